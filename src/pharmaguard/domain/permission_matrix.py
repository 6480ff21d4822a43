"""Static permission matrix - which roles, features and plans each action needs.

Loaded once at import; never mutated at runtime.
"""

from types import MappingProxyType

from pharmaguard.domain.value_objects import (
    PlanTier,
    Requirement,
    SystemRole,
    WorkplaceRole,
)

_OWNER = WorkplaceRole.OWNER
_PHARMACIST = WorkplaceRole.PHARMACIST
_TECHNICIAN = WorkplaceRole.TECHNICIAN
_ASSISTANT = WorkplaceRole.ASSISTANT
_SUPER_ADMIN = SystemRole.SUPER_ADMIN

_PRO_UP = (PlanTier.PRO, PlanTier.PHARMILY, PlanTier.NETWORK, PlanTier.ENTERPRISE)
_PHARMILY_UP = (PlanTier.PHARMILY, PlanTier.NETWORK, PlanTier.ENTERPRISE)
_NETWORK_UP = (PlanTier.NETWORK, PlanTier.ENTERPRISE)

_CLINICAL_STAFF = (_OWNER, _PHARMACIST, _TECHNICIAN)
_ALL_READERS = (_OWNER, _PHARMACIST, _TECHNICIAN, _ASSISTANT)
_PRESCRIBERS = (_OWNER, _PHARMACIST)


def _owner_only(*features: str, active: bool = False, trial: bool = True) -> Requirement:
    return Requirement(
        workplace_roles=(_OWNER,),
        features=features,
        requires_active_subscription=active,
        allow_trial_access=trial,
    )


def _network_owner() -> Requirement:
    return Requirement(
        workplace_roles=(_OWNER,),
        features=("multiLocationDashboard",),
        plan_tiers=_NETWORK_UP,
        requires_active_subscription=True,
    )


def _super_admin_only() -> Requirement:
    return Requirement(
        system_roles=(_SUPER_ADMIN,),
        requires_active_subscription=False,
        allow_trial_access=True,
    )


_MATRIX: dict[str, Requirement] = {
    # Invitations
    "invitation.create": _owner_only("teamManagement"),
    "invitation.delete": _owner_only("teamManagement"),
    "invitation.list": _owner_only(),
    "invitation.resend": _owner_only("teamManagement"),
    "invitation.view": _owner_only(),
    # Patients
    "patient.create": Requirement(
        workplace_roles=_CLINICAL_STAFF,
        features=("patientLimit",),
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "patient.read": Requirement(
        workplace_roles=_ALL_READERS,
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "patient.update": Requirement(
        workplace_roles=_CLINICAL_STAFF,
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "patient.delete": Requirement(
        workplace_roles=_PRESCRIBERS,
        requires_active_subscription=True,
    ),
    "patient.export": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("dataExport",),
        requires_active_subscription=True,
    ),
    "patient.import": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("dataImport",),
        plan_tiers=_PRO_UP,
        requires_active_subscription=True,
    ),
    # Clinical notes
    "clinical_notes.create": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("clinicalNotesLimit",),
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "clinical_notes.read": Requirement(
        workplace_roles=_CLINICAL_STAFF,
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "clinical_notes.update": Requirement(
        workplace_roles=_PRESCRIBERS,
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "clinical_notes.delete": Requirement(
        workplace_roles=_PRESCRIBERS,
        requires_active_subscription=True,
    ),
    "clinical_notes.export": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("careNoteExport",),
        requires_active_subscription=True,
    ),
    "clinical_notes.confidential_access": Requirement(
        workplace_roles=_PRESCRIBERS,
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "clinical_notes.bulk_operations": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("bulkOperations",),
        plan_tiers=_PRO_UP,
        requires_active_subscription=True,
    ),
    "clinical_notes.audit_access": Requirement(
        workplace_roles=(_OWNER,),
        system_roles=(_SUPER_ADMIN,),
        features=("auditLogs",),
        plan_tiers=_PRO_UP,
        requires_active_subscription=True,
    ),
    "clinical_notes.attachment_upload": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("fileAttachments",),
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "clinical_notes.search_advanced": Requirement(
        workplace_roles=_CLINICAL_STAFF,
        features=("advancedSearch",),
        plan_tiers=_PRO_UP,
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    # Medications
    "medication.create": Requirement(
        workplace_roles=_CLINICAL_STAFF,
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "medication.read": Requirement(
        workplace_roles=_ALL_READERS,
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "medication.update": Requirement(
        workplace_roles=_CLINICAL_STAFF,
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "medication.delete": Requirement(
        workplace_roles=_PRESCRIBERS,
        requires_active_subscription=True,
    ),
    # Clinical interventions
    "clinical_intervention.create": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("clinicalInterventions",),
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "clinical_intervention.read": Requirement(
        workplace_roles=_CLINICAL_STAFF,
        features=("clinicalInterventions",),
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "clinical_intervention.update": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("clinicalInterventions",),
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "clinical_intervention.delete": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("clinicalInterventions",),
        requires_active_subscription=True,
    ),
    "clinical_intervention.assign": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("clinicalInterventions", "teamManagement"),
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "clinical_intervention.reports": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("clinicalInterventions", "advancedReports"),
        plan_tiers=_PRO_UP,
        requires_active_subscription=True,
    ),
    "clinical_intervention.export": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("clinicalInterventions", "dataExport"),
        plan_tiers=_PRO_UP,
        requires_active_subscription=True,
    ),
    # Subscription management
    "subscription.manage": _owner_only(),
    "subscription.view": _owner_only(),
    "subscription.upgrade": _owner_only(),
    "subscription.downgrade": _owner_only(active=True, trial=False),
    "subscription.cancel": _owner_only(active=True, trial=False),
    # Workspace settings
    "workspace.settings": Requirement(
        workplace_roles=(_OWNER,),
        system_roles=(_SUPER_ADMIN,),
        allow_trial_access=True,
    ),
    "workspace.delete": Requirement(
        workplace_roles=(_OWNER,),
        system_roles=(_SUPER_ADMIN,),
    ),
    "workspace.transfer": _owner_only(active=True, trial=False),
    "workspace.manage": Requirement(
        workplace_roles=(_OWNER,),
        system_roles=(_SUPER_ADMIN,),
        allow_trial_access=True,
    ),
    "workspace.analytics": _owner_only(),
    # Reports
    "reports.basic": Requirement(
        workplace_roles=_PRESCRIBERS,
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "reports.advanced": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("advancedReports",),
        plan_tiers=_PRO_UP,
        requires_active_subscription=True,
    ),
    "reports.export": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("reportsExport",),
        requires_active_subscription=True,
    ),
    "reports.schedule": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("scheduledReports",),
        plan_tiers=_PHARMILY_UP,
        requires_active_subscription=True,
    ),
    # Adverse drug reactions
    "adr.create": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("adrModule", "adrReporting"),
        plan_tiers=_PHARMILY_UP,
        requires_active_subscription=True,
    ),
    "adr.read": Requirement(
        workplace_roles=_CLINICAL_STAFF,
        features=("adrModule",),
        requires_active_subscription=True,
        allow_trial_access=True,
    ),
    "adr.update": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("adrModule",),
        requires_active_subscription=True,
    ),
    "adr.delete": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("adrModule",),
        requires_active_subscription=True,
    ),
    "adr.report": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("adrReporting",),
        plan_tiers=_PHARMILY_UP,
        requires_active_subscription=True,
    ),
    # Multi-location
    "location.create": _network_owner(),
    "location.read": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("multiLocationDashboard",),
        plan_tiers=_NETWORK_UP,
        requires_active_subscription=True,
    ),
    "location.update": _network_owner(),
    "location.delete": _network_owner(),
    "location.manage": _network_owner(),
    # Team management
    "team.invite": _owner_only("multiUserSupport", "teamManagement", active=True),
    "team.manage": _owner_only("teamManagement", active=True),
    "team.remove": _owner_only("teamManagement", active=True),
    "team.role_change": _owner_only("teamManagement", active=True),
    # API access
    "api.access": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("apiAccess",),
        plan_tiers=_PRO_UP,
        requires_active_subscription=True,
    ),
    "api.key_generate": Requirement(
        workplace_roles=(_OWNER,),
        features=("apiAccess",),
        plan_tiers=_PRO_UP,
        requires_active_subscription=True,
    ),
    "api.key_revoke": _owner_only("apiAccess", active=True, trial=False),
    # Billing
    "billing.view": _owner_only(),
    "billing.manage": _owner_only(),
    "billing.history": _owner_only(),
    # Platform administration
    "admin.users": _super_admin_only(),
    "admin.workspaces": _super_admin_only(),
    "admin.subscriptions": _super_admin_only(),
    "admin.feature_flags": _super_admin_only(),
    "admin.system_settings": _super_admin_only(),
    # Audit
    "audit.view": Requirement(
        workplace_roles=(_OWNER,),
        system_roles=(_SUPER_ADMIN,),
        features=("auditLogs",),
        plan_tiers=_PRO_UP,
        requires_active_subscription=True,
    ),
    "audit.export": Requirement(
        workplace_roles=(_OWNER,),
        system_roles=(_SUPER_ADMIN,),
        features=("auditLogs", "dataExport"),
        plan_tiers=_PHARMILY_UP,
        requires_active_subscription=True,
    ),
    "audit.security": Requirement(
        workplace_roles=(_OWNER,),
        system_roles=(_SUPER_ADMIN,),
        features=("auditLogs", "securityMonitoring"),
        plan_tiers=_PHARMILY_UP,
        requires_active_subscription=True,
    ),
    # Integrations
    "integration.configure": Requirement(
        workplace_roles=(_OWNER,),
        features=("integrations",),
        plan_tiers=_PRO_UP,
        requires_active_subscription=True,
    ),
    "integration.manage": Requirement(
        workplace_roles=_PRESCRIBERS,
        features=("integrations",),
        requires_active_subscription=True,
    ),
    # Backup and restore
    "backup.create": Requirement(
        workplace_roles=(_OWNER,),
        features=("dataBackup",),
        plan_tiers=_PHARMILY_UP,
        requires_active_subscription=True,
    ),
    "backup.restore": Requirement(
        workplace_roles=(_OWNER,),
        features=("dataBackup",),
        plan_tiers=_PHARMILY_UP,
        requires_active_subscription=True,
    ),
    "backup.schedule": Requirement(
        workplace_roles=(_OWNER,),
        features=("dataBackup", "scheduledBackups"),
        plan_tiers=_NETWORK_UP,
        requires_active_subscription=True,
    ),
}

PERMISSION_MATRIX = MappingProxyType(_MATRIX)

# Each role satisfies requirements for every role in its list.
SYSTEM_ROLE_HIERARCHY: dict[SystemRole, frozenset[SystemRole]] = {
    SystemRole.SUPER_ADMIN: frozenset(SystemRole),
    SystemRole.OWNER: frozenset(
        {
            SystemRole.OWNER,
            SystemRole.PHARMACY_OUTLET,
            SystemRole.PHARMACY_TEAM,
            SystemRole.PHARMACIST,
        }
    ),
    SystemRole.PHARMACY_OUTLET: frozenset(
        {SystemRole.PHARMACY_OUTLET, SystemRole.PHARMACY_TEAM, SystemRole.PHARMACIST}
    ),
    SystemRole.PHARMACY_TEAM: frozenset({SystemRole.PHARMACY_TEAM, SystemRole.PHARMACIST}),
    SystemRole.PHARMACIST: frozenset({SystemRole.PHARMACIST}),
    SystemRole.INTERN_PHARMACIST: frozenset({SystemRole.INTERN_PHARMACIST}),
}

WORKPLACE_ROLE_HIERARCHY: dict[WorkplaceRole, frozenset[WorkplaceRole]] = {
    WorkplaceRole.OWNER: frozenset(WorkplaceRole),
    WorkplaceRole.PHARMACIST: frozenset(
        {WorkplaceRole.PHARMACIST, WorkplaceRole.TECHNICIAN, WorkplaceRole.ASSISTANT}
    ),
    WorkplaceRole.STAFF: frozenset(
        {WorkplaceRole.STAFF, WorkplaceRole.TECHNICIAN, WorkplaceRole.ASSISTANT}
    ),
    WorkplaceRole.TECHNICIAN: frozenset({WorkplaceRole.TECHNICIAN, WorkplaceRole.ASSISTANT}),
    WorkplaceRole.CASHIER: frozenset({WorkplaceRole.CASHIER, WorkplaceRole.ASSISTANT}),
    WorkplaceRole.ASSISTANT: frozenset({WorkplaceRole.ASSISTANT}),
}

ALL_FEATURES = "*"

DEFAULT_FEATURES: tuple[str, ...] = ("dashboard", "basicReports", "userManagement")

_BASIC_FEATURES = (
    "dashboard",
    "patientLimit",
    "basicReports",
    "emailReminders",
    "clinicalInterventions",
)
_PRO_FEATURES = (
    *_BASIC_FEATURES,
    "advancedReports",
    "dataExport",
    "apiAccess",
    "auditLogs",
    "integrations",
)
_PHARMILY_FEATURES = (
    *_PRO_FEATURES,
    "dataImport",
    "adrModule",
    "adrReporting",
    "scheduledReports",
    "dataBackup",
)
_NETWORK_FEATURES = (
    *_PHARMILY_FEATURES,
    "scheduledBackups",
    "multiLocationDashboard",
    "teamManagement",
    "multiUserSupport",
)
_ENTERPRISE_FEATURES = (
    *_NETWORK_FEATURES,
    "customIntegrations",
    "prioritySupport",
    "dedicatedManager",
)

TIER_FEATURES: dict[PlanTier, frozenset[str]] = {
    PlanTier.FREE_TRIAL: frozenset({ALL_FEATURES}),
    PlanTier.BASIC: frozenset(_BASIC_FEATURES),
    PlanTier.PRO: frozenset(_PRO_FEATURES),
    PlanTier.PHARMILY: frozenset(_PHARMILY_FEATURES),
    PlanTier.NETWORK: frozenset(_NETWORK_FEATURES),
    PlanTier.ENTERPRISE: frozenset(_ENTERPRISE_FEATURES),
}


def satisfies_system_role(held: SystemRole, required: SystemRole) -> bool:
    return required in SYSTEM_ROLE_HIERARCHY.get(held, frozenset({held}))


def satisfies_workplace_role(held: WorkplaceRole, required: WorkplaceRole) -> bool:
    return required in WORKPLACE_ROLE_HIERARCHY.get(held, frozenset({held}))
