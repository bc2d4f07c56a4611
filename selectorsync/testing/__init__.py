from .deferred import DeferredSelector, settle
from .recorder import NotificationRecorder

__all__ = [
    "DeferredSelector",
    "NotificationRecorder",
    "settle",
]
