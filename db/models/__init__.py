"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.carrier import InsuranceBranch, InsuranceCarrier
from db.models.customer import Customer
from db.models.import_run import ImportRunStatus, PolicyImportRun
from db.models.policy import Policy
from db.models.staged_policy import EXCEL_IMPORT_SOURCE, StagedPolicy, StagedPolicyStatus

__all__ = [
    "Customer",
    "EXCEL_IMPORT_SOURCE",
    "ImportRunStatus",
    "InsuranceBranch",
    "InsuranceCarrier",
    "Policy",
    "PolicyImportRun",
    "StagedPolicy",
    "StagedPolicyStatus",
]
