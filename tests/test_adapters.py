"""
Tests for the signal adapters (audio level, face landmarks, object classifier)
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest


class TestAudioLevel:
    """Tests for AudioLevelMeter and PCM decoding"""

    def test_silence_is_zero(self):
        from interview_proctor.proctor.adapters import audio_level_from_pcm

        assert audio_level_from_pcm(np.zeros(2048)) == 0.0

    def test_noise_is_loud(self):
        from interview_proctor.proctor.adapters import audio_level_from_pcm

        rng = np.random.default_rng(3)
        level = audio_level_from_pcm(rng.uniform(-0.5, 0.5, 2048))

        assert 50 < level <= 255

    def test_short_chunks_are_padded(self):
        from interview_proctor.proctor.adapters import audio_level_from_pcm

        assert audio_level_from_pcm(np.zeros(100)) == 0.0

    def test_smoothing_carries_previous_chunk(self):
        from interview_proctor.proctor.adapters import AudioLevelMeter

        rng = np.random.default_rng(5)
        noise = rng.uniform(-0.5, 0.5, 2048)
        meter = AudioLevelMeter(smoothing=0.8)

        loud = meter.level(noise)
        after = meter.level(np.zeros(2048))

        # the quiet chunk still carries most of the loud one's energy
        assert after > 0
        meter.reset()
        assert meter.level(np.zeros(2048)) == 0.0
        assert loud > after * 0.5

    def test_decode_pcm16(self):
        from interview_proctor.proctor.adapters import decode_pcm16

        data = np.array([0, 16384, -32768], dtype="<i2").tobytes()

        assert decode_pcm16(data).tolist() == [0.0, 0.5, -1.0]

    @pytest.mark.parametrize("kwargs", [
        {"fft_size": 1000},
        {"fft_size": 0},
        {"smoothing": 1.0},
        {"min_db": -30, "max_db": -100},
    ])
    def test_invalid_meter_settings(self, kwargs):
        from interview_proctor.proctor.adapters import AudioLevelMeter

        with pytest.raises(ValueError):
            AudioLevelMeter(**kwargs)


def _mesh_result(*faces):
    return SimpleNamespace(multi_face_landmarks=[
        SimpleNamespace(landmark=[SimpleNamespace(x=x, y=y) for x, y in face])
        for face in faces
    ] or None)


class TestMediaPipeFaceLandmarks:
    """Tests for MediaPipeFaceLandmarks with a stand-in FaceMesh"""

    def test_unavailable_when_mediapipe_fails(self):
        from interview_proctor.proctor.adapters import MediaPipeFaceLandmarks

        with patch("interview_proctor.proctor.models.create_face_mesh", side_effect=ImportError("mediapipe")):
            adapter = MediaPipeFaceLandmarks()
            assert adapter.is_available() is False
            assert adapter.detect(np.zeros((4, 4, 3), dtype=np.uint8)) is None

    def test_detect_returns_normalized_landmarks(self):
        from interview_proctor.proctor.adapters import MediaPipeFaceLandmarks

        mesh = MagicMock()
        mesh.process.return_value = _mesh_result([(0.1, 0.2), (0.3, 0.4)], [(0.5, 0.6)])

        with patch("interview_proctor.proctor.models.create_face_mesh", return_value=mesh):
            adapter = MediaPipeFaceLandmarks(max_faces=2)
            observation = adapter.detect(np.zeros((4, 4, 3), dtype=np.uint8))

        assert observation.face_count == 2
        assert observation.faces[0] == [(0.1, 0.2), (0.3, 0.4)]

        adapter.close()
        mesh.close.assert_called_once()

    def test_no_faces(self):
        from interview_proctor.proctor.adapters import MediaPipeFaceLandmarks

        mesh = MagicMock()
        mesh.process.return_value = _mesh_result()

        with patch("interview_proctor.proctor.models.create_face_mesh", return_value=mesh):
            observation = MediaPipeFaceLandmarks().detect(np.zeros((4, 4, 3), dtype=np.uint8))

        assert observation.face_count == 0

    def test_empty_frame(self):
        from interview_proctor.proctor.adapters import MediaPipeFaceLandmarks

        assert MediaPipeFaceLandmarks().detect(np.zeros((0, 0, 3), dtype=np.uint8)) is None


class TestYoloObjectClassifier:
    """Tests for YoloObjectClassifier with a stand-in model"""

    def _model(self):
        box = SimpleNamespace(
            cls=np.array([67.0]),
            conf=np.array([0.91]),
            xyxy=np.array([[10.0, 20.0, 50.0, 100.0]])
        )
        result = SimpleNamespace(boxes=[box], names={67: "cell phone"})
        model = MagicMock()
        model.predict.return_value = [result]
        return model

    def test_detections_use_xywh_boxes(self):
        from interview_proctor.proctor.adapters import YoloObjectClassifier

        with patch("interview_proctor.proctor.models.get_yolo_model", return_value=self._model()):
            detections = YoloObjectClassifier().detect(np.zeros((8, 8, 3), dtype=np.uint8))

        assert len(detections) == 1
        assert detections[0].label == "cell phone"
        assert detections[0].score == pytest.approx(0.91)
        assert detections[0].bbox == (10.0, 20.0, 40.0, 80.0)

    def test_unavailable_model(self):
        from interview_proctor.proctor.adapters import YoloObjectClassifier

        with patch("interview_proctor.proctor.models.get_yolo_model", side_effect=ImportError("ultralytics")):
            classifier = YoloObjectClassifier()
            assert classifier.is_available() is False
            assert classifier.detect(np.zeros((8, 8, 3), dtype=np.uint8)) is None

    def test_prediction_error(self):
        from interview_proctor.proctor.adapters import YoloObjectClassifier

        model = self._model()
        model.predict.side_effect = RuntimeError("CUDA out of memory")

        with patch("interview_proctor.proctor.models.get_yolo_model", return_value=model):
            assert YoloObjectClassifier().detect(np.zeros((8, 8, 3), dtype=np.uint8)) is None


class TestLocalCapture:
    """Tests for run_local_monitor with a stand-in camera"""

    def _camera(self, frames):
        camera = MagicMock()
        camera.isOpened.return_value = True
        camera.read.side_effect = [(True, f) for f in frames] + [(False, None)]
        return camera

    def test_runs_until_camera_stops(self):
        from interview_proctor.proctor.capture import run_local_monitor

        camera = self._camera([np.zeros((8, 8, 3), dtype=np.uint8)] * 3)

        with patch("interview_proctor.proctor.capture.cv2.VideoCapture", return_value=camera), \
                patch("interview_proctor.proctor.models.create_face_mesh", side_effect=ImportError("mediapipe")), \
                patch("interview_proctor.proctor.models.get_yolo_model", side_effect=ImportError("ultralytics")):
            report = run_local_monitor("cand-local", save=False)

        assert report["candidateName"] == "cand-local"
        assert report["events"] == []
        assert report["summary"]["finalScore"] == 100
        assert camera.read.call_count == 4
        camera.release.assert_called_once()

    def test_missing_camera(self):
        from interview_proctor.proctor.capture import run_local_monitor

        camera = MagicMock()
        camera.isOpened.return_value = False

        with patch("interview_proctor.proctor.capture.cv2.VideoCapture", return_value=camera):
            with pytest.raises(RuntimeError):
                run_local_monitor("cand-local", save=False)
