from __future__ import annotations

import pytest

from discord_utils.safety import (
    InteractionAcker,
    safe_defer,
    safe_delete_message,
    safe_edit_interaction_message,
    safe_fetch_message,
    safe_send_channel_message,
    safe_send_initial,
    safe_send_modal,
)


class NotFound(Exception):
    pass


class _FakeResponse:
    def __init__(self, done: bool = False):
        self._done = done
        self.deferred = 0
        self.sent = []
        self.modals = []
        self.edits = []

    def is_done(self) -> bool:
        return self._done

    async def defer(self, *, ephemeral: bool = False):
        self.deferred += 1
        self._done = True

    async def send_message(self, content: str, *, ephemeral: bool = False, **kwargs):
        self.sent.append((content, ephemeral, kwargs))
        self._done = True

    async def send_modal(self, modal):
        self.modals.append(modal)
        self._done = True

    async def edit_message(self, **kwargs):
        self.edits.append(kwargs)
        self._done = True


class _FakeFollowup:
    def __init__(self):
        self.sent = []

    async def send(self, content: str, *, ephemeral: bool = False, **kwargs):
        self.sent.append((content, ephemeral, kwargs))


class _FakeInteraction:
    def __init__(self, done: bool = False):
        self.response = _FakeResponse(done=done)
        self.followup = _FakeFollowup()


class _FakeMessage:
    def __init__(self, should_fail: bool):
        self.should_fail = should_fail
        self.deleted = False

    async def delete(self):
        if self.should_fail:
            raise NotFound("gone")
        self.deleted = True


class _BrokenChannel:
    async def send(self, **kwargs):
        raise RuntimeError("missing permissions")

    async def fetch_message(self, message_id: int):
        raise NotFound(str(message_id))


@pytest.mark.asyncio
async def test_safe_defer_is_idempotent():
    interaction = _FakeInteraction(done=False)

    first = await safe_defer(interaction, ephemeral=True)
    second = await safe_defer(interaction, ephemeral=True)

    assert first is True
    assert second is False
    assert interaction.response.deferred == 1


@pytest.mark.asyncio
async def test_safe_send_initial_falls_back_to_followup_when_done():
    interaction = _FakeInteraction(done=True)

    ok = await safe_send_initial(interaction, "Abmeldung erstellt", ephemeral=True)

    assert ok is True
    assert interaction.followup.sent == [("Abmeldung erstellt", True, {})]


@pytest.mark.asyncio
async def test_safe_send_modal_and_edit_only_once():
    interaction = _FakeInteraction(done=False)

    assert await safe_send_modal(interaction, "modal") is True
    assert await safe_edit_interaction_message(interaction, view=None) is False
    assert interaction.response.modals == ["modal"]
    assert interaction.response.edits == []


@pytest.mark.asyncio
async def test_safe_delete_message_handles_not_found():
    broken = _FakeMessage(should_fail=True)
    healthy = _FakeMessage(should_fail=False)

    assert await safe_delete_message(broken) is False
    assert await safe_delete_message(healthy) is True
    assert healthy.deleted is True


@pytest.mark.asyncio
async def test_safe_channel_wrappers_return_none_on_failure():
    channel = _BrokenChannel()

    assert await safe_send_channel_message(channel, content="Panel") is None
    assert await safe_fetch_message(channel, 123) is None
    assert await safe_fetch_message(object(), 123) is None


@pytest.mark.asyncio
async def test_interaction_acker_acknowledges_once():
    acker = InteractionAcker()

    assert await acker.mark_or_get(1) is True
    assert await acker.mark_or_get(1) is False
    assert await acker.mark_or_get(2) is True
