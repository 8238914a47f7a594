from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from db.repository import Repository, TuningDocumentRecord
from discord_utils.safety import safe_delete_message
from discord_utils.task_registry import SingletonTaskRegistry
from services.tuning_service import DocumentationForm, create_documentation


log = logging.getLogger("werkstatt.flows")

DEFAULT_WINDOW_SECONDS = 60.0
FLOW_FAILED_MESSAGE = "Die Dokumentation konnte nicht abgeschlossen werden."


class FlowState(str, Enum):
    AWAITING_FORM = "awaiting_form"
    RECORD_PERSISTED = "record_persisted"
    AWAITING_IMAGE_CHOICE = "awaiting_image_choice"
    AWAITING_IMAGE_UPLOAD = "awaiting_image_upload"
    FINALIZING = "finalizing"
    PUBLISHED = "published"


WINDOW_STATES = frozenset({FlowState.AWAITING_IMAGE_CHOICE, FlowState.AWAITING_IMAGE_UPLOAD})


# Events


@dataclass(frozen=True, slots=True)
class FormSubmitted:
    record_id: int


@dataclass(frozen=True, slots=True)
class ChoicePrompted:
    pass


@dataclass(frozen=True, slots=True)
class AttachChosen:
    pass


@dataclass(frozen=True, slots=True)
class SkipChosen:
    pass


@dataclass(frozen=True, slots=True)
class ImageReceived:
    url: str
    message: Any = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class WindowExpired:
    pass


@dataclass(frozen=True, slots=True)
class Finalized:
    pass


# Actions


@dataclass(frozen=True, slots=True)
class PromptImageChoice:
    pass


@dataclass(frozen=True, slots=True)
class PromptUpload:
    pass


@dataclass(frozen=True, slots=True)
class OpenWindow:
    pass


@dataclass(frozen=True, slots=True)
class PatchImage:
    url: str


@dataclass(frozen=True, slots=True)
class DeleteUpload:
    message: Any = field(compare=False)


@dataclass(frozen=True, slots=True)
class Finalize:
    image_url: str | None


def transition(state: FlowState, event: Any) -> tuple[FlowState, list[Any]]:
    """Pure step function of a submission flow.

    Events that do not apply to the current state are ignored and leave the
    state untouched with no actions.
    """
    if state == FlowState.AWAITING_FORM and isinstance(event, FormSubmitted):
        return FlowState.RECORD_PERSISTED, [PromptImageChoice()]

    if state == FlowState.RECORD_PERSISTED:
        if isinstance(event, ChoicePrompted):
            return FlowState.AWAITING_IMAGE_CHOICE, [OpenWindow()]
        if isinstance(event, WindowExpired):
            return FlowState.FINALIZING, [Finalize(image_url=None)]

    if state == FlowState.AWAITING_IMAGE_CHOICE:
        if isinstance(event, AttachChosen):
            return FlowState.AWAITING_IMAGE_UPLOAD, [PromptUpload(), OpenWindow()]
        if isinstance(event, (SkipChosen, WindowExpired)):
            return FlowState.FINALIZING, [Finalize(image_url=None)]

    if state == FlowState.AWAITING_IMAGE_UPLOAD:
        if isinstance(event, ImageReceived):
            return FlowState.FINALIZING, [
                PatchImage(url=event.url),
                DeleteUpload(message=event.message),
                Finalize(image_url=event.url),
            ]
        if isinstance(event, WindowExpired):
            return FlowState.FINALIZING, [Finalize(image_url=None)]

    if state == FlowState.FINALIZING and isinstance(event, Finalized):
        return FlowState.PUBLISHED, []

    return state, []


class FlowPresenter(Protocol):
    async def prompt_image_choice(self, flow: "SubmissionFlow") -> None: ...

    async def prompt_upload(self, flow: "SubmissionFlow") -> None: ...

    async def send_document(self, flow: "SubmissionFlow", record: TuningDocumentRecord) -> None: ...

    async def notify(self, flow: "SubmissionFlow", content: str) -> None: ...


PublishCallback = Callable[[Any, str], Awaitable[Any]]


class SubmissionFlow:
    def __init__(
        self,
        *,
        repo: Repository,
        presenter: FlowPresenter,
        record: TuningDocumentRecord,
        user_id: int,
        channel: Any,
        topic: str,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        on_published: PublishCallback | None = None,
        interaction: Any = None,
    ) -> None:
        self.repo = repo
        self.presenter = presenter
        self.record = record
        self.user_id = int(user_id)
        self.channel = channel
        self.topic = topic
        self.window_seconds = float(window_seconds)
        self.on_published = on_published
        self.interaction = interaction

        self.state = FlowState.AWAITING_FORM
        self.deadline: float | None = None
        self._events: asyncio.Queue[Any] = asyncio.Queue()
        self._claimed_windows: set[FlowState] = set()

    @property
    def key(self) -> tuple[int, str]:
        return self.user_id, self.topic

    @property
    def channel_id(self) -> int | None:
        channel_id = getattr(self.channel, "id", None)
        return int(channel_id) if channel_id is not None else None

    @property
    def finished(self) -> bool:
        return self.state in {FlowState.FINALIZING, FlowState.PUBLISHED}

    def offer(self, event: Any) -> bool:
        """Queue a user event if its window is still unclaimed."""
        if self.finished:
            return False

        if isinstance(event, (AttachChosen, SkipChosen)):
            window = FlowState.AWAITING_IMAGE_CHOICE
            open_states = {FlowState.RECORD_PERSISTED, FlowState.AWAITING_IMAGE_CHOICE}
        elif isinstance(event, ImageReceived):
            window = FlowState.AWAITING_IMAGE_UPLOAD
            open_states = {FlowState.AWAITING_IMAGE_UPLOAD}
        else:
            return False

        if self.state not in open_states or window in self._claimed_windows:
            return False
        self._claimed_windows.add(window)
        self._events.put_nowait(event)
        return True

    def expire(self) -> None:
        if not self.finished:
            self._events.put_nowait(WindowExpired())

    async def run(self) -> None:
        try:
            await self._apply(FormSubmitted(record_id=self.record.id))
            await self._apply(ChoicePrompted())
            while self.state in WINDOW_STATES:
                await self._apply(await self._next_event())
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception(
                "Submission flow failed topic=%s user_id=%s record_id=%s state=%s",
                self.topic,
                self.user_id,
                self.record.id,
                self.state.value,
            )
            await self.presenter.notify(self, FLOW_FAILED_MESSAGE)

    async def _next_event(self) -> Any:
        loop = asyncio.get_running_loop()
        remaining = (self.deadline or loop.time()) - loop.time()
        if remaining <= 0:
            return WindowExpired()
        try:
            return await asyncio.wait_for(self._events.get(), timeout=remaining)
        except asyncio.TimeoutError:
            return WindowExpired()

    async def _apply(self, event: Any) -> None:
        next_state, actions = transition(self.state, event)
        if next_state == self.state and not actions:
            log.debug("Ignored %s in state=%s", type(event).__name__, self.state.value)
            return

        log.debug("Flow %s: %s -> %s", self.key, self.state.value, next_state.value)
        self.state = next_state
        for action in actions:
            await self._perform(action)

    async def _perform(self, action: Any) -> None:
        if isinstance(action, PromptImageChoice):
            await self.presenter.prompt_image_choice(self)
        elif isinstance(action, PromptUpload):
            await self.presenter.prompt_upload(self)
        elif isinstance(action, OpenWindow):
            self.deadline = asyncio.get_running_loop().time() + self.window_seconds
        elif isinstance(action, PatchImage):
            await self.repo.set_tuning_document_image(self.topic, self.record.id, action.url)
            self.record.image_url = action.url
        elif isinstance(action, DeleteUpload):
            await safe_delete_message(action.message)
        elif isinstance(action, Finalize):
            await self._finalize(action.image_url)

    async def _finalize(self, image_url: str | None) -> None:
        self.record.image_url = image_url
        await self.presenter.send_document(self, self.record)
        await self._apply(Finalized())
        log.info(
            "Documentation published variant=%s id=%s user_id=%s image=%s",
            self.topic,
            self.record.id,
            self.user_id,
            "yes" if image_url else "no",
        )
        if self.on_published is not None:
            await self.on_published(self.channel, self.topic)


class SubmissionFlowController:
    """Owns all in-flight submission flows, one per (user, topic)."""

    def __init__(
        self,
        repo: Repository,
        presenter: FlowPresenter,
        *,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        on_published: PublishCallback | None = None,
    ) -> None:
        self.repo = repo
        self.presenter = presenter
        self.window_seconds = float(window_seconds)
        self.on_published = on_published
        self._flows: dict[tuple[int, str], SubmissionFlow] = {}
        self._tasks = SingletonTaskRegistry()
        self._begin_locks: dict[tuple[int, str], asyncio.Lock] = {}

    @staticmethod
    def task_name(user_id: int, topic: str) -> str:
        return f"submission:{int(user_id)}:{topic}"

    def get_flow(self, user_id: int, topic: str) -> SubmissionFlow | None:
        return self._flows.get((int(user_id), topic))

    def active_flows(self) -> list[SubmissionFlow]:
        return [flow for flow in self._flows.values() if not flow.finished]

    async def begin_submission_flow(
        self,
        *,
        user_id: int,
        author_name: str,
        channel: Any,
        topic: str,
        form: DocumentationForm,
        interaction: Any = None,
    ) -> SubmissionFlow:
        """Persist the documentation without image and start its flow.

        A still running flow for the same user and topic is expired first, so
        the older record is finalized without an image. Overlapping calls for
        the same key run one after another.
        """
        key = (int(user_id), topic)
        lock = self._begin_locks.setdefault(key, asyncio.Lock())
        async with lock:
            return await self._begin_locked(
                user_id=user_id,
                author_name=author_name,
                channel=channel,
                topic=topic,
                form=form,
                interaction=interaction,
            )

    async def _begin_locked(
        self,
        *,
        user_id: int,
        author_name: str,
        channel: Any,
        topic: str,
        form: DocumentationForm,
        interaction: Any,
    ) -> SubmissionFlow:
        await self._supersede(user_id, topic)

        record = await create_documentation(
            self.repo,
            topic,
            form,
            author_id=user_id,
            author_name=author_name,
        )
        flow = SubmissionFlow(
            repo=self.repo,
            presenter=self.presenter,
            record=record,
            user_id=user_id,
            channel=channel,
            topic=topic,
            window_seconds=self.window_seconds,
            on_published=self.on_published,
            interaction=interaction,
        )
        self._flows[flow.key] = flow
        task = self._tasks.start_once(self.task_name(user_id, topic), flow.run)
        task.add_done_callback(lambda _done, current=flow: self._forget(current))
        return flow

    async def wait_for(self, user_id: int, topic: str) -> None:
        task = self._tasks.get(self.task_name(user_id, topic))
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    async def _supersede(self, user_id: int, topic: str) -> None:
        previous = self._flows.get((int(user_id), topic))
        if previous is None:
            return
        log.info("Superseding submission flow user_id=%s topic=%s", user_id, topic)
        previous.expire()
        await self.wait_for(user_id, topic)
        self._forget(previous)

    def _forget(self, flow: SubmissionFlow) -> None:
        if self._flows.get(flow.key) is flow:
            self._flows.pop(flow.key, None)

    def dispatch_choice(self, user_id: int, topic: str, *, attach: bool) -> bool:
        flow = self._flows.get((int(user_id), topic))
        if flow is None:
            return False
        return flow.offer(AttachChosen() if attach else SkipChosen())

    def handle_message(
        self,
        *,
        author_id: int,
        channel_id: int,
        attachment_urls: list[str],
        message: Any = None,
    ) -> bool:
        """Route an attachment-bearing message to the author's upload window."""
        if not attachment_urls:
            return False
        for flow in list(self._flows.values()):
            if flow.user_id != int(author_id) or flow.channel_id != int(channel_id):
                continue
            if flow.state != FlowState.AWAITING_IMAGE_UPLOAD:
                continue
            if flow.offer(ImageReceived(url=attachment_urls[0], message=message)):
                return True
        return False

    async def shutdown(self) -> None:
        await self._tasks.cancel_all()
        self._flows.clear()
