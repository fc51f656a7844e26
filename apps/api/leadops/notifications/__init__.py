from leadops.notifications.models import Notification
from leadops.notifications.schemas import NotificationInbox, NotificationRead, NotificationType

__all__ = ["Notification", "NotificationInbox", "NotificationRead", "NotificationType"]
