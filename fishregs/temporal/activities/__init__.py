from fishregs.temporal.activities.regulation_activities import process_regulation_document

__all__ = ["process_regulation_document"]
