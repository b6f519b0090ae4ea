"""User-visible notifications."""

from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

ERROR_TITLE = "Family Tree Error"


@dataclass
class Notification:
    title: str
    message: str
    color: str = "red"


class NotificationCenter:
    """Collects notifications for the presentation layer and mirrors them to the log."""

    def __init__(self):
        self.history: list[Notification] = []

    def show(self, title: str, message: str, color: str = "red") -> Notification:
        notification = Notification(title=title, message=message, color=color)
        self.history.append(notification)
        if color == "red":
            logger.error("%s: %s", title, message)
        else:
            logger.info("%s: %s", title, message)
        return notification

    def error(self, message: str) -> Notification:
        return self.show(ERROR_TITLE, message, color="red")

    @property
    def last(self) -> Notification | None:
        return self.history[-1] if self.history else None
