from __future__ import annotations

import pytest
from pydantic import ValidationError

from routecache.models import ObjectType, PushEvent, PushOutcome, UpsertOutcome
from routecache.strava.application import dispatch_push_event

from tests.builders import make_strava_event
from tests.conftest import SynchronizerSpy

pytestmark = pytest.mark.asyncio


@pytest.mark.parametrize("aspect", ["create", "update"])
async def test_activity_changes_are_applied(
    synchronizer_spy: SynchronizerSpy, aspect: str
) -> None:
    event = PushEvent.model_validate(make_strava_event(aspect_type=aspect, object_id=42))
    synchronizer_spy.expect_apply_pushed_activity(42, 7, returns=UpsertOutcome.UPDATED)

    outcome = await dispatch_push_event(event, synchronizer_spy)

    assert outcome is PushOutcome.APPLIED
    synchronizer_spy.assert_last_apply(42, 7)


async def test_skipped_activity_is_reported(synchronizer_spy: SynchronizerSpy) -> None:
    event = PushEvent.model_validate(make_strava_event())
    synchronizer_spy.expect_apply_pushed_activity(returns=UpsertOutcome.SKIPPED)

    assert await dispatch_push_event(event, synchronizer_spy) is PushOutcome.SKIPPED


async def test_delete_is_ignored(synchronizer_spy: SynchronizerSpy) -> None:
    event = PushEvent.model_validate(make_strava_event(aspect_type="delete"))

    assert await dispatch_push_event(event, synchronizer_spy) is PushOutcome.IGNORED
    assert synchronizer_spy.applied == []


async def test_non_activity_objects_are_ignored(synchronizer_spy: SynchronizerSpy) -> None:
    event = PushEvent.model_validate(
        make_strava_event(object_type="athlete", aspect_type="update", updates={"authorized": "false"})
    )

    assert event.object_type is ObjectType.OTHER
    assert await dispatch_push_event(event, synchronizer_spy) is PushOutcome.IGNORED
    assert synchronizer_spy.applied == []


async def test_failures_propagate(synchronizer_spy: SynchronizerSpy) -> None:
    event = PushEvent.model_validate(make_strava_event())
    synchronizer_spy.expect_apply_pushed_activity(raises=RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        await dispatch_push_event(event, synchronizer_spy)


def test_unknown_aspect_is_rejected() -> None:
    with pytest.raises(ValidationError):
        PushEvent.model_validate(make_strava_event(aspect_type="archive"))
