"""Issuance and revocation against a registry and its local tree."""

from .synchronizer import IssuanceResult, RegistrySynchronizer, ZkCertRegistration

__all__ = [
    "IssuanceResult",
    "RegistrySynchronizer",
    "ZkCertRegistration",
]
