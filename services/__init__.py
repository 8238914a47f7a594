from services.absence_service import (
    create_absence,
    deactivate_absence_by_id,
    sweep_expired_absences,
    terminate_active_absence,
)
from services.sanction_service import issue_sanction, list_sanctions_for_display, revoke_sanction
from services.tuning_service import build_documentation_form, create_documentation, record_eigentuning

__all__ = [
    "build_documentation_form",
    "create_absence",
    "create_documentation",
    "deactivate_absence_by_id",
    "issue_sanction",
    "list_sanctions_for_display",
    "record_eigentuning",
    "revoke_sanction",
    "sweep_expired_absences",
    "terminate_active_absence",
]
