"""Chat messages announcing lock-pick attempts."""

from .localization import LocalizationKey, Localizer
from .models import DegreeOfSuccess


def attempt_message(localizer: Localizer, actor_name: str, degree: DegreeOfSuccess) -> str:
    """Announce one attempt. The DC is deliberately left out; everyone sees this."""
    lines = [
        localizer.format(LocalizationKey.CHAT_ATTEMPT, actor=actor_name),
        localizer.format(LocalizationKey.CHAT_RESULT, degree=localizer.degree_label(degree)),
    ]
    if degree is DegreeOfSuccess.CRITICAL_FAILURE:
        lines.append(localizer.lookup(LocalizationKey.CHAT_PICK_DESTROYED))
    return "\n".join(lines)


def lock_picked_message(localizer: Localizer, actor_name: str) -> str:
    return localizer.format(LocalizationKey.CHAT_LOCK_PICKED, actor=actor_name)
