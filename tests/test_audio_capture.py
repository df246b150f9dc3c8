import pytest

from fakes import FakeMediaDevices
from interview_coach.services.session.audio_capture import AUDIO_CONSTRAINTS, AudioCaptureAdapter


def record(adapter: AudioCaptureAdapter, event: str) -> list:
    seen = []
    adapter.on(event, lambda *args: seen.append(args))
    return seen


@pytest.mark.asyncio
async def test_records_one_artifact_per_question() -> None:
    devices = FakeMediaDevices()
    capture = AudioCaptureAdapter(devices)
    stops = record(capture, "stop")

    assert await capture.start(0) is True
    assert capture.recording
    assert devices.constraints == [AUDIO_CONSTRAINTS]
    recorder = devices.latest_recorder
    assert recorder.timeslice_ms == 1000
    assert recorder.mime_type == "audio/webm"

    recorder.push(b"chunk-1")
    recorder.push(b"")
    recorder.push(b"chunk-2")
    artifact = capture.stop()

    assert artifact.question_index == 0
    assert artifact.data == b"chunk-1chunk-2|final"
    assert artifact.size == len(artifact.data)
    assert capture.artifacts == {0: artifact}
    assert stops == [(artifact,)]
    assert devices.streams[0].tracks[0].stopped
    assert not capture.recording


@pytest.mark.asyncio
async def test_rerecording_replaces_the_artifact() -> None:
    devices = FakeMediaDevices()
    capture = AudioCaptureAdapter(devices)

    await capture.start(1)
    devices.latest_recorder.push(b"first take")
    capture.stop()
    await capture.start(1)
    devices.latest_recorder.push(b"second take")
    capture.stop()

    assert capture.artifacts[1].data.startswith(b"second take")
    assert list(capture.artifacts) == [1]


@pytest.mark.asyncio
async def test_falls_back_to_ogg_then_platform_default() -> None:
    devices = FakeMediaDevices(supported_types=("audio/ogg",))
    capture = AudioCaptureAdapter(devices)
    await capture.start(0)
    assert devices.latest_recorder.mime_type == "audio/ogg"
    capture.stop()

    devices.supported_types.clear()
    await capture.start(1)
    assert devices.latest_recorder.mime_type == ""
    artifact = capture.stop()
    assert artifact.mime_type == "audio/webm"


@pytest.mark.asyncio
async def test_start_while_recording_is_ignored() -> None:
    devices = FakeMediaDevices()
    capture = AudioCaptureAdapter(devices)
    await capture.start(0)
    assert await capture.start(0) is False
    assert len(devices.streams) == 1


@pytest.mark.asyncio
async def test_denied_microphone_reports_error() -> None:
    capture = AudioCaptureAdapter(FakeMediaDevices(deny=True))
    errors = record(capture, "error")

    assert await capture.start(0) is False
    assert not capture.recording
    assert errors and "Could not access the microphone" in errors[0][0]
    assert capture.stop() is None


@pytest.mark.asyncio
async def test_recorder_failure_releases_stream() -> None:
    devices = FakeMediaDevices(fail_recorder=True)
    capture = AudioCaptureAdapter(devices)
    errors = record(capture, "error")

    assert await capture.start(0) is False
    assert devices.streams[0].tracks[0].stopped
    assert errors and "Could not start recording" in errors[0][0]
    assert not capture.recording


@pytest.mark.asyncio
async def test_unsupported_platform() -> None:
    capture = AudioCaptureAdapter(None)
    errors = record(capture, "error")
    assert not capture.supported
    assert await capture.start(0) is False
    assert errors == [("Audio recording is not supported",)]


def test_stop_without_start_is_a_no_op() -> None:
    capture = AudioCaptureAdapter(FakeMediaDevices())
    stops = record(capture, "stop")
    assert capture.stop() is None
    assert stops == []
