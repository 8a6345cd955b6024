from typing import Any, Optional

from common_lib.models.progress import WatchAssignment
from common_lib.youtube import PlayerError, extract_video_id, watch_url
from watch_client import get_logger
from watch_client.client import ProgressClient, AssignmentUnavailable
from watch_client.notify import Notifier, LogNotifier, EMBED_FALLBACK
from watch_client.player import PlayerAdapter, PlayerHost
from watch_client.poller import ProgressPoller, PollerConfig

LOG = get_logger(__name__)


class WatchSession:
    """One student watching one assigned video: loads the assignment, embeds the player and tracks progress
    until closed."""

    def __init__(self,
                 client: ProgressClient,
                 host: PlayerHost,
                 notifier: Optional[Notifier] = None,
                 config: Optional[PollerConfig] = None):
        self.client = client
        self.host = host
        self.notifier = notifier or client.notifier or LogNotifier()
        self.config = config

        self.assignment: Optional[WatchAssignment] = None
        self.adapter: Optional[PlayerAdapter] = None
        self.poller: Optional[ProgressPoller] = None

    def open(self, container: Any) -> WatchAssignment:
        self.assignment = self.client.load_assignment()
        self.client.ensure_progress()

        if self.assignment.video is None:
            raise AssignmentUnavailable(f"Assignment {self.assignment.id} has no video.")

        self.adapter = PlayerAdapter(self.host)
        self.poller = ProgressPoller(
            self.adapter,
            self.client,
            self.notifier,
            prevent_skip=self.assignment.prevent_skip,
            start_position=self.assignment.last_position,
            saved_percent=self.assignment.progress_percent,
            watched_seconds=self.assignment.watched_seconds,
            config=self.config,
        )
        self.adapter.on_ready = self.poller.start
        self.adapter.on_embed_error = self._on_embed_error

        LOG.info("Opening assignment %s (video %s, skip prevention %s).",
                 self.assignment.id, self.assignment.video.video_id, self.assignment.prevent_skip)
        self.adapter.initialize(container, self.assignment.video.video_id, self.assignment.last_position)
        return self.assignment

    def _on_embed_error(self, error: Optional[PlayerError]):
        self.poller.mark_embed_error()
        self.notifier.alert(EMBED_FALLBACK % self.fallback_url)

    @property
    def fallback_url(self) -> Optional[str]:
        if self.adapter is not None and self.adapter.fallback_url:
            return self.adapter.fallback_url
        if self.assignment is not None and self.assignment.video is not None:
            video_id = extract_video_id(self.assignment.video.video_id)
            return watch_url(video_id) if video_id else None
        return None

    def close(self):
        if self.poller is not None:
            self.poller.teardown()
        if self.adapter is not None:
            self.adapter.destroy()
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
