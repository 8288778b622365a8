from notifications.push import PushDeliveryError, PushNotification, PushNotificationService

__all__ = ["PushDeliveryError", "PushNotification", "PushNotificationService"]
