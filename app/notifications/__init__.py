"""
Notifications app for purchase confirmation emails.

This app provides:
- NotificationDispatcher: email sending with bounded, linear retries
- ConfirmationNotifier: membership and training confirmation emails
- Email templates under templates/notifications/email/

Usage:
    from notifications.services import ConfirmationNotifier

    result = ConfirmationNotifier().notify(outcome)
    if not result.success:
        ...
"""
