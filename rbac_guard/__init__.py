"""
RBAC Guard
==========

Role-based access control: permission resolution, check-then-act
enforcement with an append-only audit trail, and login anomaly analysis.
"""

__version__ = "1.0.0"
