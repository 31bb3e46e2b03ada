from fishregs.temporal.workflows.process_regulation_document import ProcessRegulationDocumentWorkflow

__all__ = ["ProcessRegulationDocumentWorkflow"]
