"""Primary system roles and workplace roles."""

from enum import StrEnum


class SystemRole(StrEnum):
    """Platform-wide role stored on the user record."""

    SUPER_ADMIN = "super_admin"
    OWNER = "owner"
    PHARMACY_OUTLET = "pharmacy_outlet"
    PHARMACY_TEAM = "pharmacy_team"
    PHARMACIST = "pharmacist"
    INTERN_PHARMACIST = "intern_pharmacist"


class WorkplaceRole(StrEnum):
    """Role of a member inside a workspace."""

    OWNER = "Owner"
    PHARMACIST = "Pharmacist"
    STAFF = "Staff"
    TECHNICIAN = "Technician"
    CASHIER = "Cashier"
    ASSISTANT = "Assistant"
