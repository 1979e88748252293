"""Certificate issuance module.

Provides:
- Exactly-once issuance per (user, course)
- Certificate lookup and public verification
"""

from .models import (
    CERTIFICATE_TABLES_CQL,
    Certificate,
    IssueOutcome,
    IssueResult,
    compute_grade,
)


__all__ = [
    "CERTIFICATE_TABLES_CQL",
    "Certificate",
    "IssueOutcome",
    "IssueResult",
    "compute_grade",
]
