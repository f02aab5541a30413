# -*- coding: utf-8 -*-
"""
Workflow error taxonomy.

Every failure a workflow run can hit is a WorkflowError carrying a
human-readable message; the HTTP layer maps the classes to status codes.
Messages are in French because they surface in the admin console.
"""


class WorkflowError(Exception):
    """Base class for workflow automation errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class WorkflowNotFound(WorkflowError):
    def __init__(self, message: str = "Workflow introuvable ou inactif"):
        super().__init__(message)


class ExecutionNotFound(WorkflowError):
    def __init__(self, message: str = "Exécution introuvable ou déjà terminée"):
        super().__init__(message)


class MissingContact(WorkflowError):
    def __init__(self, purpose: str):
        super().__init__(f"Aucun contact disponible pour {purpose}")


class MissingEmail(WorkflowError):
    def __init__(self, message: str = (
            "Email manquant dans les données du formulaire. "
            "Vérifiez que le formulaire contient un champ email.")):
        super().__init__(message)


class TemplateNotFound(WorkflowError):
    def __init__(self, message: str = "Template introuvable"):
        super().__init__(message)


class InvalidActionConfig(WorkflowError):
    def __init__(self, action_type, details: str):
        super().__init__(f"Configuration invalide pour l'action {action_type or 'inconnue'}: {details}")
        self.action_type = action_type


class EmailDeliveryError(WorkflowError):
    def __init__(self, recipient: str):
        super().__init__(f"Échec de l'envoi de l'email à {recipient}")


class ActionFailed(WorkflowError):
    """Raised by the runner after a failed action has been recorded."""

    def __init__(self, index: int, action_type, details: str, execution_id: str):
        super().__init__(f"Action {index + 1} failed")
        self.index = index
        self.action_type = action_type
        self.details = details
        self.execution_id = execution_id
