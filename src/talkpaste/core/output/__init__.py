from .notification import play_notification
from .text_output import DeliveryOutcome, OutputDispatcher

__all__ = ["DeliveryOutcome", "OutputDispatcher", "play_notification"]
