import pytest

from airtime.billing.plans import ArtifactKind, Tier
from airtime.core.retry import RetryExhaustedError
from airtime.infrastructure import events_client
from airtime.infrastructure.events_client import EventBusConfigError
from airtime.models.events import PODCAST_RETRY_JOB, PODCAST_UPLOADED, DispatchEvent, PodcastUploadedData, RetryableJob
from airtime.services.dispatch import dispatch_jobs, send_with_retry


def _job(kind, project_id="p1"):
    return RetryableJob(job=kind, project_id=project_id, user_id="user_1", original_plan=Tier.pro, current_plan=Tier.ultra)


def test_send_with_retry_recovers_after_two_failures(fake_bus, sleeps):
    fake_bus.fail_next(2)
    result = send_with_retry(DispatchEvent(name=PODCAST_UPLOADED, data={"projectId": "p1"}))
    assert result == {"ids": ["evt-1"]}
    assert len(fake_bus.attempts) == 3
    assert sleeps == [0.5, 1.0]


def test_send_with_retry_stops_after_three_attempts(fake_bus, sleeps):
    fake_bus.fail_next(3)
    with pytest.raises(RetryExhaustedError) as exc_info:
        send_with_retry(DispatchEvent(name=PODCAST_UPLOADED, data={}))
    assert exc_info.value.attempts == 3
    assert len(fake_bus.attempts) == 3
    assert fake_bus.delivered == []
    assert sleeps == [0.5, 1.0]


def test_config_errors_are_not_retried(monkeypatch, sleeps):
    calls = []

    def misconfigured(event):
        calls.append(event)
        raise EventBusConfigError("Missing required event bus configuration: INNGEST_EVENT_KEY")

    monkeypatch.setattr(events_client, "send_event", misconfigured)
    with pytest.raises(EventBusConfigError):
        send_with_retry(DispatchEvent(name=PODCAST_UPLOADED, data={}))
    assert len(calls) == 1
    assert sleeps == []


def test_dispatch_jobs_reports_per_job_outcomes(fake_bus, sleeps):
    fake_bus.fail_next(3, job="hashtags")
    jobs = [_job(ArtifactKind.hashtags), _job(ArtifactKind.key_moments), _job(ArtifactKind.youtube_timestamps)]

    report = dispatch_jobs(jobs)

    assert [o.job for o in report.outcomes] == [
        ArtifactKind.hashtags, ArtifactKind.key_moments, ArtifactKind.youtube_timestamps,
    ]
    assert report.failed == [ArtifactKind.hashtags]
    assert report.delivered == [ArtifactKind.key_moments, ArtifactKind.youtube_timestamps]
    assert not report.ok
    failed = report.outcomes[0]
    assert failed.attempts == 3
    assert failed.error == "bus unavailable"
    assert fake_bus.attempts_for("hashtags") == 3
    assert sorted(fake_bus.delivered_jobs) == ["keyMoments", "youtubeTimestamps"]


def test_dispatch_jobs_counts_attempts_per_job(fake_bus, sleeps):
    fake_bus.fail_next(1, job="titles")
    report = dispatch_jobs([_job(ArtifactKind.titles)])
    assert report.ok
    assert report.outcomes[0].attempts == 2
    assert report.outcomes[0].event_ids == ["evt-1"]
    assert sleeps == [0.5]


def test_dispatch_jobs_rejects_empty_batch():
    with pytest.raises(ValueError):
        dispatch_jobs([])


def test_retry_job_event_payload():
    event = _job(ArtifactKind.key_moments, project_id="p9").to_event()
    assert event.name == PODCAST_RETRY_JOB
    assert event.data == {
        "projectId": "p9",
        "job": "keyMoments",
        "userId": "user_1",
        "originalPlan": "pro",
        "currentPlan": "ultra",
    }


def test_universal_artifacts_are_not_retryable_jobs():
    with pytest.raises(ValueError):
        _job(ArtifactKind.summary)


def test_uploaded_payload_omits_unknown_duration():
    data = PodcastUploadedData(
        projectId="p1",
        userId="user_1",
        plan=Tier.pro,
        fileUrl="https://blob.example.com/a.mp3",
        fileName="a.mp3",
        fileSize=10,
        fileFormat="mp3",
        mimeType="audio/mpeg",
    )
    event = data.to_event()
    assert event.name == PODCAST_UPLOADED
    assert "fileDuration" not in event.data
    assert event.data["plan"] == "pro"

    with_duration = data.model_copy(update={"fileDuration": 61.5}).to_event()
    assert with_duration.data["fileDuration"] == 61.5


def test_batch_jobs_share_the_single_send_policy(monkeypatch, sleeps):
    def misconfigured(event):
        raise EventBusConfigError("Missing required event bus configuration: INNGEST_EVENT_KEY")

    monkeypatch.setattr(events_client, "send_event", misconfigured)
    report = dispatch_jobs([_job(ArtifactKind.titles)])

    outcome = report.outcomes[0]
    assert not outcome.delivered
    assert outcome.attempts == 1
    assert "INNGEST_EVENT_KEY" in outcome.error
    assert sleeps == []


def test_send_with_retry_accepts_custom_sender(sleeps):
    sent = []

    def sender(event):
        sent.append(event)
        if len(sent) == 1:
            raise ConnectionError("reset")
        return {"ids": ["x"]}

    result = send_with_retry(DispatchEvent(name=PODCAST_RETRY_JOB, data={}), send=sender)
    assert result == {"ids": ["x"]}
    assert len(sent) == 2
    assert sleeps == [0.5]
