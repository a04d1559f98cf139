"""
Classification pipeline
Runs Tensor Encoder -> Inference Adapter -> Decision Step on a single
background worker, one frame at a time, and hands labels to the
presentation channel
"""

import logging
import threading
import time
from typing import Optional, Sequence

from .camera_interface import Frame
from .errors import ResourceError, WasteCamError
from .models.classifier import InferenceAdapter, ModelHandle
from .models.decision import LABELS, Classification, decide
from .models.encoder import TensorEncoder
from .presentation import PresentationChannel

IDLE = "idle"
RUNNING = "running"
UNUSABLE = "unusable"
STOPPED = "stopped"


class ClassificationPipeline:
    """
    Owns the model handle and the worker thread

    The model handle is loaded in start() and released in stop(), after
    the worker has stopped taking frames. Per-frame failures are reported
    to the channel and never stop the worker. A model load failure leaves
    the pipeline unusable without raising.
    """

    def __init__(self, source, encoder: TensorEncoder, adapter: InferenceAdapter,
                 channel: PresentationChannel, labels: Sequence[str] = LABELS,
                 poll_interval: float = 0.1):
        """
        Initialize pipeline

        Args:
            source: Frame source with next_frame(timeout) and frame counters
            encoder: Frame to tensor encoder
            adapter: Inference adapter
            channel: Handoff to the presentation thread
            labels: Label set, index-aligned with the model output
            poll_interval: Seconds to wait for a frame before rechecking for stop
        """
        self.source = source
        self.encoder = encoder
        self.adapter = adapter
        self.channel = channel
        self.labels = tuple(labels)
        self.poll_interval = poll_interval

        self.state = IDLE
        self.handle: Optional[ModelHandle] = None
        self.last_result: Optional[Classification] = None
        self.frames_processed = 0
        self.frames_failed = 0
        self.start_time: Optional[float] = None

        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self.logger = logging.getLogger(__name__)

    @property
    def running(self) -> bool:
        return self.state == RUNNING

    def start(self) -> bool:
        """
        Load the model and start the worker

        Returns:
            True if the worker is running
        """
        if self.running:
            self.logger.warning("Pipeline is already running")
            return True

        try:
            self.handle = self.adapter.load()
        except ResourceError as e:
            self.state = UNUSABLE
            self.logger.error(f"Pipeline unusable: {e}")
            self.channel.post_error(f"Classifier unavailable: {e}")
            self.channel.post_status("Classifier unavailable - preview only")
            return False

        self._stop_event.clear()
        self.start_time = time.time()
        self.state = RUNNING
        self._worker = threading.Thread(target=self._processing_loop, name="classifier", daemon=True)
        self._worker.start()

        self.logger.info("Classification pipeline started")
        return True

    def stop(self):
        """Stop the worker, then release the model handle"""
        if self.state in (IDLE, STOPPED):
            return

        self.logger.info("Stopping classification pipeline...")
        self._stop_event.set()

        if self._worker and self._worker.is_alive():
            # An in-flight inference runs to completion
            self._worker.join()
        self._worker = None

        self.adapter.release(self.handle)
        self.handle = None
        self.state = STOPPED
        self.logger.info(
            f"Classification pipeline stopped: {self.frames_processed} processed, "
            f"{self.frames_failed} failed"
        )

    def _processing_loop(self):
        """Take the latest frame and classify it until stopped"""
        self.logger.info("Starting classification loop")

        while not self._stop_event.is_set():
            frame = self.source.next_frame(timeout=self.poll_interval)
            if frame is None:
                if not getattr(self.source, 'running', True):
                    # Source stopped, next_frame no longer blocks
                    self._stop_event.wait(self.poll_interval)
                continue
            if self._stop_event.is_set():
                break
            self.process_frame(frame)

    def process_frame(self, frame: Frame) -> Optional[Classification]:
        """
        Classify one frame and post the result

        Returns:
            Classification, or None if any stage failed
        """
        try:
            tensor = self.encoder.encode(frame)
            probabilities = self.adapter.infer(self.handle, tensor)
            result = decide(probabilities, self.labels, frame_id=frame.frame_id)
        except WasteCamError as e:
            self._report_failure(frame, f"{type(e).__name__}: {e}")
            return None
        except Exception as e:
            self.logger.exception(f"Unexpected error on frame {frame.frame_id}")
            self._report_failure(frame, f"Error running model inference: {e}")
            return None

        self.frames_processed += 1
        self.last_result = result
        self.logger.debug(f"Frame classified: {result.to_dict()}")
        self.channel.post_label(result.label)
        return result

    def _report_failure(self, frame: Frame, message: str):
        self.frames_failed += 1
        self.logger.warning(f"Frame {frame.frame_id} skipped - {message}")
        self.channel.post_error(message)

    def stats(self) -> dict:
        """Get pipeline statistics"""
        uptime = time.time() - self.start_time if self.start_time else 0.0
        return {
            "state": self.state,
            "frames_processed": self.frames_processed,
            "frames_failed": self.frames_failed,
            "frames_received": getattr(self.source, 'frames_received', 0),
            "frames_dropped": getattr(self.source, 'frames_dropped', 0),
            "uptime_seconds": uptime,
            "last_label": self.last_result.label if self.last_result else None
        }

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
