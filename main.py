#!/usr/bin/env python3
"""
Live Waste Classifier - Main Application

Streams camera frames, classifies each frame into one of four waste
categories and shows the top label:
- Camera interface with keep-latest frame source
- Tensor encoder and pre-trained TFLite/Keras classifier
- Single background classification worker
- OpenCV preview window or headless console output

Usage:
    python main.py [--config config.json] [--model model.tflite] [--simulate] [--headless] [--debug]
"""

import argparse
import logging
import signal
import sys
import time
from typing import Any, Dict, Optional

from wastecam.camera_interface import CameraInterface, LatestFrameSource
from wastecam.config import load_config, setup_logging
from wastecam.models.classifier import InferenceAdapter
from wastecam.models.decision import LABELS
from wastecam.models.encoder import TensorEncoder
from wastecam.pipeline import ClassificationPipeline
from wastecam.presentation import LogSink, PresentationChannel, WindowSink


class WasteClassifierApp:
    """
    Main live classification application
    Owns the camera, the pipeline and the presentation sink
    """

    def __init__(self, config: Dict[str, Any], model_loader=None):
        """
        Initialize the application

        Args:
            config: Configuration dictionary
            model_loader: Optional replacement for the model file loader
        """
        self.config = config
        self.model_loader = model_loader
        self.running = False
        self.logger = logging.getLogger(__name__)

        self.camera = None
        self.source = None
        self.pipeline = None
        self.channel = PresentationChannel()
        self.sink = None

    def initialize_components(self):
        """Initialize all application components"""
        self.logger.info("Initializing components...")

        camera_config = self.config.get('camera', {})
        self.camera = CameraInterface(
            source=camera_config.get('source', 'auto'),
            resolution=tuple(camera_config.get('resolution', [640, 480])),
            fps=camera_config.get('fps', 30),
            sample_dir=camera_config.get('sample_dir')
        )
        self.source = LatestFrameSource(self.camera)

        model_config = self.config.get('model', {})
        image_size = int(model_config.get('image_size', 224))
        encoder = TensorEncoder(
            image_size=image_size,
            resize=self.config.get('encoder', {}).get('resize', True)
        )
        adapter = InferenceAdapter(
            model_path=model_config.get('path'),
            image_size=image_size,
            num_classes=len(LABELS),
            loader=self.model_loader,
            slow_inference_seconds=model_config.get('slow_inference_seconds', 1.0)
        )

        self.pipeline = ClassificationPipeline(self.source, encoder, adapter, self.channel)

        display_config = self.config.get('display', {})
        if display_config.get('headless', False):
            self.sink = LogSink()
        else:
            self.sink = WindowSink(
                window_name=display_config.get('window_name', 'Waste Classifier'),
                error_display_seconds=display_config.get('error_display_seconds', 2.0)
            )

        self.logger.info("All components initialized successfully")

    def start(self):
        """Start the camera and the classification pipeline"""
        if self.running:
            self.logger.warning("Application is already running")
            return

        self.initialize_components()
        self.running = True
        self.source.start()

        if not self.pipeline.start():
            self.logger.error("Classifier unavailable - showing camera preview only")

    def stop(self):
        """Stop the application"""
        if not self.running:
            return

        self.logger.info("Stopping Waste Classifier...")
        self.running = False

        # Worker must stop before the model handle is released
        if self.pipeline:
            self.pipeline.stop()
        if self.source:
            self.source.stop()
        if self.camera:
            self.camera.release()
        if isinstance(self.sink, WindowSink):
            self.sink.close()

        # Flush any notices posted before shutdown
        if self.sink:
            self.channel.dispatch(self.sink)

        if self.pipeline:
            stats = self.pipeline.stats()
            self.logger.info(
                f"Final Stats - Processed: {stats['frames_processed']}, "
                f"Failed: {stats['frames_failed']}, Dropped: {stats['frames_dropped']}"
            )

        self.logger.info("Waste Classifier stopped")

    def run(self, duration: Optional[float] = None):
        """
        Main-thread presentation loop

        Args:
            duration: Stop after this many seconds, run until quit if None
        """
        deadline = time.time() + duration if duration is not None else None

        while self.running:
            self.channel.dispatch(self.sink)

            if isinstance(self.sink, WindowSink):
                if not self.sink.render(self.source.latest()):
                    self.logger.info("Quit requested from preview window")
                    break
            else:
                time.sleep(0.05)

            if deadline is not None and time.time() >= deadline:
                break

    def get_status(self) -> Dict:
        """Get current application status"""
        if not self.running:
            return {"status": "stopped"}

        return {
            "status": "running",
            "camera": self.camera.get_camera_info(),
            "pipeline": self.pipeline.stats()
        }


app = None


def signal_handler(signum, frame):
    """Handle shutdown signals"""
    print("\nReceived shutdown signal. Stopping...")
    if app:
        app.running = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live Waste Classifier")
    parser.add_argument('--config', '-c', help='Configuration file path')
    parser.add_argument('--model', '-m', help='Path to .tflite, .h5 or .keras model')
    parser.add_argument('--simulate', '-s', action='store_true',
                        help='Force simulation mode')
    parser.add_argument('--video', '-v', help='Use video file as input source')
    parser.add_argument('--camera', type=int, help='USB camera device index')
    parser.add_argument('--image-size', type=int, help='Model input size in pixels')
    parser.add_argument('--headless', action='store_true',
                        help='Print labels instead of opening a preview window')
    parser.add_argument('--duration', type=float, help='Stop after this many seconds')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging')
    return parser


def apply_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Override config based on command line arguments"""
    if args.simulate:
        config['camera']['source'] = 'simulated'
    elif args.video:
        config['camera']['source'] = args.video
    elif args.camera is not None:
        config['camera']['source'] = args.camera

    if args.model:
        config['model']['path'] = args.model
    if args.image_size:
        config['model']['image_size'] = args.image_size
    if args.headless:
        config['display']['headless'] = True
    if args.debug:
        config['log_level'] = 'DEBUG'

    return config


def main(argv=None):
    """Main entry point"""
    global app

    args = build_parser().parse_args(argv)
    config = apply_overrides(load_config(args.config), args)
    setup_logging(config.get('log_level', 'INFO'), config.get('log_file'))

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    app = WasteClassifierApp(config)

    try:
        print("Starting Live Waste Classifier...")
        print(f"Camera source: {config['camera']['source']}")
        print(f"Model: {config['model']['path']}")
        print("Press Ctrl+C (or q in the preview window) to stop")

        app.start()
        app.run(duration=args.duration)

    except KeyboardInterrupt:
        print("\nShutdown requested by user")
    finally:
        app.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
