from .novated_lease import router as novated_lease_router

__all__ = [
    'novated_lease_router',
]
