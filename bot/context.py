from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Mapping

from bot.config import BotConfig
from db.repository import Repository
from services.absence_service import sweep_expired_absences, terminate_active_absence
from services.panel_service import MessageBuilder, PanelSynchronizer
from services.submission_flow import FlowPresenter, SubmissionFlow, SubmissionFlowController
from services.topics import ABSENCE_TOPIC
from services.tuning_service import DocumentationForm, build_documentation_form
from utils.time_utils import berlin_now, berlin_today


log = logging.getLogger("werkstatt.runtime")

ChannelResolver = Callable[[int], Awaitable[Any]]


def member_display_name(user: Any) -> str:
    for attr in ("display_name", "global_name", "name"):
        value = getattr(user, attr, None)
        if value:
            return str(value)
    return str(getattr(user, "id", "?"))


class BotContext:
    """Everything the command handlers need, wired once at startup."""

    def __init__(
        self,
        *,
        config: BotConfig,
        repo: Repository,
        message_builder: MessageBuilder,
        presenter: FlowPresenter,
        resolve_channel: ChannelResolver,
        today_fn: Callable[[], date] = berlin_today,
    ) -> None:
        self.config = config
        self.repo = repo
        self.resolve_channel = resolve_channel
        self.panels = PanelSynchronizer(repo, message_builder=message_builder, today_fn=today_fn)
        self.flows = SubmissionFlowController(
            repo,
            presenter,
            window_seconds=config.submission_window_seconds,
            on_published=self.publish_panel,
        )

    async def publish_panel(self, channel: Any, topic: str) -> int | None:
        return await self.panels.publish_panel(channel, topic)

    async def refresh_panels(self, topic: str) -> int:
        """Republish the topic's panel everywhere it is currently shown."""
        channel_ids = set(await self.repo.list_panel_channel_ids(topic))
        configured = self.config.channel_id_for_topic(topic)
        if configured:
            channel_ids.add(int(configured))

        published = 0
        for channel_id in sorted(channel_ids):
            channel = await self.resolve_channel(channel_id)
            if channel is None:
                log.warning("Panel channel %s for topic=%s not reachable", channel_id, topic)
                continue
            if await self.publish_panel(channel, topic) is not None:
                published += 1
        return published

    async def sweep_expired_absences(self, as_of: date | datetime | None = None) -> int:
        return await sweep_expired_absences(self.repo, as_of or berlin_now())

    async def begin_submission_flow(
        self,
        *,
        user: Any,
        channel: Any,
        topic: str,
        form_data: DocumentationForm | Mapping[str, Any],
        interaction: Any = None,
    ) -> SubmissionFlow:
        form = form_data if isinstance(form_data, DocumentationForm) else build_documentation_form(topic, **form_data)
        return await self.flows.begin_submission_flow(
            user_id=int(user.id),
            author_name=member_display_name(user),
            channel=channel,
            topic=topic,
            form=form,
            interaction=interaction,
        )

    async def terminate_active_absence(self, user: Any) -> bool:
        record = await terminate_active_absence(self.repo, int(user.id))
        if record is None:
            return False
        await self.refresh_panels(ABSENCE_TOPIC)
        return True

    async def close(self) -> None:
        await self.flows.shutdown()
