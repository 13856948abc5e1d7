from . import payment_repository as payment_repo
from . import webhook_event_repository as webhook_repo

__all__ = ["payment_repo", "webhook_repo"]
