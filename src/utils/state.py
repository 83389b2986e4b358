from dataclasses import dataclass, field

from utils.config import settings


@dataclass
class UserNameStore:
    """
    Holds the user name the client signs its requests with.
    Shared between the view-models and the HTTP client, which reads it
    again on every request so a change takes effect on the next sync.
    """

    user_name: str = field(default_factory=lambda: settings.default_user_name)
