import asyncio

import pytest

from interview_coach.services.session.errors import PermissionDeniedError, SpeechUnsupportedError
from interview_coach.services.session.platform import RecognitionAlternative, Utterance
from interview_coach.services.session.remote import (
    AudioFeed,
    ClientPermissionGate,
    ProviderSynthesisEngine,
    RecognitionRelay,
    RemoteMediaDevices,
    WhisperRecognitionEngine,
    estimate_duration,
    whisper_engine_factory,
)
from interview_coach.services.tts import GTTS_VOICE, SpeechAudio


@pytest.mark.asyncio
async def test_permission_gate_requires_a_report() -> None:
    gate = ClientPermissionGate()
    with pytest.raises(PermissionDeniedError):
        await gate()

    gate.report(camera=True, microphone=False)
    with pytest.raises(PermissionDeniedError) as info:
        await gate()
    assert info.value.code == "not-allowed"

    gate.report(camera=False, microphone=True)
    with pytest.raises(PermissionDeniedError, match="Camera"):
        await gate()

    gate.report(camera=True, microphone=True)
    assert await gate() is True


@pytest.mark.asyncio
async def test_remote_devices_deliver_uploaded_chunks_while_recording() -> None:
    gate, feed = ClientPermissionGate(), AudioFeed()
    devices = RemoteMediaDevices(gate, feed, mime_types=["audio/ogg"])

    with pytest.raises(PermissionDeniedError):
        await devices.get_user_media({"audio": True})

    gate.report(camera=True, microphone=True)
    stream = await devices.get_user_media({"audio": True})
    assert devices.is_type_supported("audio/ogg")
    assert not devices.is_type_supported("audio/webm")

    recorder = devices.create_recorder(stream, "")
    assert recorder.mime_type == "audio/webm"
    received = []
    recorder.on_data = received.append

    assert feed.push(b"before") == 0
    recorder.start(1000)
    assert feed.push(b"during") == 1
    recorder.stop()
    assert feed.push(b"after") == 0
    assert received == [b"during"]

    assert devices.active_streams == 1
    for track in stream.get_tracks():
        track.stop()
    assert devices.active_streams == 0


def test_relay_routes_client_events_to_the_live_engine() -> None:
    relay = RecognitionRelay()
    assert relay.deliver(results=[RecognitionAlternative("hi", True)]) is False

    engine = relay.factory()()
    events = []
    engine.on_start = lambda: events.append("start")
    engine.on_result = lambda results: events.append(("result", [r.transcript for r in results]))
    engine.on_error = lambda code: events.append(("error", code))
    engine.on_end = lambda: events.append("end")

    engine.start()
    assert relay.active
    assert relay.deliver(results=[RecognitionAlternative("hello", False)], error="network") is True
    assert relay.deliver(ended=True) is True
    # The browser ended on its own; nothing listens until a restart
    assert relay.deliver(results=[RecognitionAlternative("late", True)]) is False

    engine.start()
    engine.stop()
    engine.abort()
    assert relay.current is None

    assert events == [
        "start", ("result", ["hello"]), ("error", "network"), "end",
        "start", "end",
    ]


@pytest.mark.asyncio
async def test_whisper_engine_transcribes_on_stop() -> None:
    feed = AudioFeed()
    calls = []

    async def transcribe(audio: bytes, mime_type: str) -> str:
        calls.append((audio, mime_type))
        return "I would use a cache"

    engine = WhisperRecognitionEngine(feed, transcribe, interim_interval=60)
    events = []
    engine.on_result = lambda results: events.append(("result", results[0].transcript, results[0].is_final))
    engine.on_end = lambda: events.append("end")

    engine.start()
    feed.push(b"a")
    feed.push(b"b")
    await asyncio.sleep(0)
    engine.stop()
    assert feed.consumers == 0
    await asyncio.sleep(0.01)

    # First chunk triggers one interim pass; throttling holds the rest until stop
    assert calls[0] == (b"a", "audio/webm")
    assert calls[-1] == (b"ab", "audio/webm")
    assert events[-2:] == [("result", "I would use a cache", True), "end"]


@pytest.mark.asyncio
async def test_whisper_engine_reports_silence_and_failures() -> None:
    feed = AudioFeed()

    async def silent(audio: bytes, mime_type: str) -> str:
        return ""

    async def broken(audio: bytes, mime_type: str) -> str:
        raise RuntimeError("upstream down")

    for transcribe, expected in ((silent, "no-speech"), (broken, "network")):
        engine = WhisperRecognitionEngine(feed, transcribe, interim_interval=60)
        events = []
        engine.on_error = lambda code: events.append(code)
        engine.on_end = lambda: events.append("end")
        engine.start()
        feed.push(b"mumble")
        engine.stop()
        await asyncio.sleep(0.01)
        assert events == [expected, "end"]


def test_whisper_factory_requires_configuration() -> None:
    async def transcribe(audio: bytes, mime_type: str) -> str:
        return ""

    build = whisper_engine_factory(AudioFeed(), transcribe, available=False)
    with pytest.raises(SpeechUnsupportedError):
        build()
    assert isinstance(whisper_engine_factory(AudioFeed(), transcribe, available=True)(), WhisperRecognitionEngine)


def test_estimate_duration_grows_with_text() -> None:
    assert estimate_duration("") == pytest.approx(3.0)
    assert estimate_duration("one two three four five", rate=1.0) == pytest.approx(5.0)
    assert estimate_duration("word " * 100) > estimate_duration("word " * 10)


def _utterance(events: list, text: str = "What is a closure?") -> Utterance:
    return Utterance(
        text=text,
        on_start=lambda: events.append("start"),
        on_end=lambda: events.append("end"),
        on_error=lambda code: events.append(("error", code)),
    )


@pytest.mark.asyncio
async def test_provider_engine_ends_on_playback_ack() -> None:
    async def synthesize(text, voice):
        return SpeechAudio(b"mp3-bytes", "audio/mpeg", "gtts")

    engine = ProviderSynthesisEngine(synthesize, lambda: [GTTS_VOICE], ack_timeout=5)
    assert engine.get_voices() == [GTTS_VOICE]
    events = []

    engine.speak(_utterance(events))
    clip = await engine.wait_for_clip(timeout=1)
    assert clip.data == b"mp3-bytes"
    assert clip.media_type == "audio/mpeg"
    assert events == ["start"]

    assert engine.mark_played("some-other-clip") is False
    assert engine.mark_played(clip.clip_id) is True
    await asyncio.wait_for(engine.drain(), 1)
    assert events == ["start", "end"]
    assert clip.played


@pytest.mark.asyncio
async def test_provider_engine_times_out_without_ack() -> None:
    async def synthesize(text, voice):
        return SpeechAudio(b"mp3-bytes", "audio/mpeg", "openai")

    engine = ProviderSynthesisEngine(synthesize, list, ack_timeout=0.01)
    events = []
    engine.speak(_utterance(events))
    await asyncio.wait_for(engine.drain(), 1)
    assert events == ["start", "end"]


@pytest.mark.asyncio
async def test_provider_engine_silent_clip_ends_immediately() -> None:
    async def synthesize(text, voice):
        return SpeechAudio(b"", "audio/mpeg", "silence")

    engine = ProviderSynthesisEngine(synthesize, list, ack_timeout=30)
    events = []
    engine.speak(_utterance(events))
    await asyncio.wait_for(engine.drain(), 1)
    assert events == ["start", "end"]
    assert engine.clip.provider == "silence"


@pytest.mark.asyncio
async def test_provider_engine_failure_and_cancel() -> None:
    async def failing(text, voice):
        raise RuntimeError("quota")

    engine = ProviderSynthesisEngine(failing, list)
    events = []
    engine.speak(_utterance(events))
    assert await engine.wait_for_clip(timeout=1) is None
    await engine.drain()
    assert events == [("error", "synthesis-failed")]

    async def slow(text, voice):
        await asyncio.sleep(10)

    engine = ProviderSynthesisEngine(slow, list)
    events = []
    engine.speak(_utterance(events))
    await asyncio.sleep(0)
    engine.cancel()
    await asyncio.sleep(0)
    assert engine.clip is None
    assert engine.mark_played() is False
    assert events == []
