from .exceptions import (
    InvalidTenantIdentifier,
    ProvisioningFailure,
    SwitchFailure,
    TenantNotFound,
    TenantSwitchError,
)

__version__ = "0.1.0"

__all__ = [
    "InvalidTenantIdentifier",
    "ProvisioningFailure",
    "SwitchFailure",
    "TenantNotFound",
    "TenantSwitchError",
]
