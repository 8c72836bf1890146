"""
app/validators package marker.
"""

from app.validators.policy_row_validator import PolicyRowValidator

__all__ = [
    "PolicyRowValidator",
]
