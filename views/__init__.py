from views.modals import AbsenceModal, DocumentationModal
from views.panel_views import ImageChoiceView, PanelView

__all__ = [
    "AbsenceModal",
    "DocumentationModal",
    "ImageChoiceView",
    "PanelView",
]
