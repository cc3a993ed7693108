"""Tracking of live challenge views on the local client."""

import logging

from .collaborators import ChallengeView
from .models import Challenge

logger = logging.getLogger(__name__)


class ViewRegistry:
    """Maps challenge ids to the views currently showing them."""

    def __init__(self):
        self._views: dict[str, list[ChallengeView]] = {}

    def register(self, view: ChallengeView) -> None:
        views = self._views.setdefault(view.challenge_id, [])
        if view not in views:
            views.append(view)

    def unregister(self, view: ChallengeView) -> None:
        views = self._views.get(view.challenge_id)
        if not views:
            return
        if view in views:
            views.remove(view)
        if not views:
            del self._views[view.challenge_id]

    def views_for(self, challenge_id: str) -> list[ChallengeView]:
        return list(self._views.get(challenge_id, []))

    def has_views(self, challenge_id: str) -> bool:
        return bool(self._views.get(challenge_id))

    async def render_all(self, challenge: Challenge) -> int:
        """Re-render every view bound to ``challenge.id``. Returns how many rendered."""
        rendered = 0
        for view in self.views_for(challenge.id):
            try:
                await view.render(challenge)
                rendered += 1
            except Exception as e:
                logger.error(f"Failed to render view for {challenge.id}: {e}", exc_info=True)
        return rendered

    def close_all(self, challenge_id: str) -> None:
        for view in self.views_for(challenge_id):
            try:
                view.close()
            except Exception as e:
                logger.error(f"Failed to close view for {challenge_id}: {e}")
            self.unregister(view)
