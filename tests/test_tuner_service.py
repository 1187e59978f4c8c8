import unittest

import numpy as np

from pluck_tuner.audio.tuner_service import TunerService
from pluck_tuner.core.events import TunerEvents
from pluck_tuner.core.interfaces import IFrameSource, IRenderingSink
from pluck_tuner.note_types import F0Estimate, Tuning
from pluck_tuner.tuner_engine import TunerEngine
from tests.conftest import ScriptedEstimator, make_tone, peak

SR = 44100


class FakeSource(IFrameSource):
    def __init__(self, accept=True):
        self.accept = accept
        self.callback = None
        self.running = False

    @property
    def sample_rate(self):
        return SR

    @property
    def frame_length(self):
        return 2048

    def start(self, callback):
        if not self.accept:
            return False
        self.callback = callback
        self.running = True
        return True

    def stop(self):
        self.running = False

    def is_running(self):
        return self.running

    def feed(self, frame):
        self.callback(frame)


class RecordingSink(IRenderingSink):
    def __init__(self):
        self.calls = []

    def render(self, state):
        self.calls.append(("render", state))

    def hide(self):
        self.calls.append(("hide", None))


class ExplodingEngine(TunerEngine):
    def process_frame(self, frame, tuning, sample_rate=None):
        raise RuntimeError("boom")


class TestTunerService(unittest.TestCase):
    def setUp(self):
        self.source = FakeSource()
        self.sink = RecordingSink()
        self.events = TunerEvents()
        self.peaks = ScriptedEstimator()
        self.engine = TunerEngine(
            peak_estimator=self.peaks, fallback_estimator=ScriptedEstimator(), events=self.events
        )
        self.service = TunerService(
            self.source, self.engine, Tuning.standard(), self.sink, events=self.events
        )

    def test_frames_flow_to_sink(self):
        rendered = []
        hidden = []
        self.events.on_state_rendered(rendered.append)
        self.events.on_hidden(lambda: hidden.append(True))
        self.peaks.estimates = [peak(110.0)]

        self.assertTrue(self.service.start())
        self.assertTrue(self.service.is_running())
        self.source.feed(make_tone(110.0, amplitude=4000.0))
        self.source.feed(np.zeros(2048, dtype=np.int16))

        kinds = [kind for kind, _ in self.sink.calls]
        self.assertEqual(kinds, ["render", "hide"])
        self.assertEqual(self.sink.calls[0][1].note_name, "A2")
        self.assertEqual(len(rendered), 1)
        self.assertEqual(hidden, [True])
        self.assertEqual(self.service.frames_processed, 2)

    def test_no_change_frames_leave_sink_alone(self):
        self.service.start()
        self.source.feed(make_tone(110.0, amplitude=4000.0))
        self.assertEqual(self.sink.calls, [])

    def test_start_resets_engine(self):
        self.peaks.estimates = [peak(110.0)]
        self.service.process(make_tone(110.0, amplitude=4000.0))
        self.assertIsNotNone(self.engine.last_stable_hz)
        self.service.start()
        self.assertIsNone(self.engine.last_stable_hz)

    def test_start_twice(self):
        self.assertTrue(self.service.start())
        self.assertFalse(self.service.start())

    def test_source_refuses_to_start(self):
        service = TunerService(FakeSource(accept=False), self.engine, Tuning.standard(), self.sink)
        self.assertFalse(service.start())
        self.assertFalse(service.is_running())

    def test_stop(self):
        self.service.start()
        self.service.stop()
        self.assertFalse(self.service.is_running())
        self.assertFalse(self.source.running)

    def test_reset_applies_before_next_frame(self):
        self.peaks.estimates = [peak(110.0), F0Estimate.none()]
        self.service.start()
        self.source.feed(make_tone(110.0, amplitude=4000.0))
        self.service.reset()
        self.assertIsNotNone(self.engine.last_stable_hz)
        self.source.feed(make_tone(110.0, amplitude=4000.0))
        self.assertIsNone(self.engine.last_stable_hz)

    def test_set_tuning(self):
        drop_d = Tuning.from_names(["D2", "A2", "D3", "G3", "B3", "E4"])
        self.peaks.estimates = [peak(73.5)]
        self.service.set_tuning(drop_d)
        self.assertIs(self.service.tuning, drop_d)
        self.service.process(make_tone(73.5, amplitude=4000.0))
        self.assertEqual(self.sink.calls[-1][1].note_name, "D2")

    def test_frame_errors_are_reported_not_raised(self):
        errors = []
        self.events.on_error(errors.append)
        service = TunerService(
            self.source, ExplodingEngine(), Tuning.standard(), self.sink, events=self.events
        )
        service.start()
        self.source.feed(make_tone(110.0))
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], RuntimeError)
        self.assertEqual(self.sink.calls, [])
