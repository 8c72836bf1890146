"""
app/mappers package marker.
"""

from app.mappers.policy_mapper import PolicyMapper, StagingContext

__all__ = [
    "PolicyMapper",
    "StagingContext",
]
