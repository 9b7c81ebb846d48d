"""
Vision dashboard: real-time object detection and image classification.

Loads the detection and classification models, opens the camera, runs the
inference loop and serves the dashboard.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --host: Override web.host
    --port: Override web.port
"""

import argparse
import logging
import os
import sys
from typing import Any, Dict, Optional, Tuple

import uvicorn
import yaml

from models.config import Config
from ops.logging import setup_logging
from runtime.context import RuntimeContext
from runtime.services import DashboardRuntime
from web.app import create_app
from web.state import state as web_state

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Required top-level sections
    required_sections = ['camera', 'models', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate camera settings
    camera = config.get('camera') or {}
    backend = camera.get('backend', 'opencv')
    if backend != 'opencv':
        return False, "camera.backend must be: opencv"
    if 'device_id' in camera and not isinstance(camera['device_id'], (int, str)):
        return False, "camera.device_id must be an integer (index) or string (URL)"
    if isinstance(camera.get('device_id'), int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"
    if camera.get('facing', 'environment') not in ('environment', 'user'):
        return False, "camera.facing must be one of: environment, user"
    devices = camera.get('devices') or {}
    if not isinstance(devices, dict):
        return False, "camera.devices must map a facing mode to a device"

    if 'resolution' in camera:
        res = camera['resolution']
        if not isinstance(res, list) or len(res) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in res):
            return False, "camera.resolution values must be positive integers"

    if camera.get('fps') is not None:
        if not isinstance(camera['fps'], int) or camera['fps'] <= 0:
            return False, "camera.fps must be a positive integer"
    if camera.get('rotate', 0) not in (0, 90, 180, 270):
        return False, "camera.rotate must be one of 0,90,180,270"

    # Validate model settings
    models = config.get('models') or {}
    for name in ('detector', 'classifier'):
        section = models.get(name) or {}
        if 'model' in section and (not isinstance(section['model'], str) or not section['model']):
            return False, f"models.{name}.model must be a non-empty string"

    detector = models.get('detector') or {}
    for key in ('conf_threshold', 'iou_threshold'):
        if key in detector:
            if not _is_number(detector[key]) or not (0 <= detector[key] <= 1):
                return False, f"models.detector.{key} must be between 0 and 1"
    if 'max_detections' in detector:
        if not isinstance(detector['max_detections'], int) or detector['max_detections'] <= 0:
            return False, "models.detector.max_detections must be a positive integer"

    classifier = models.get('classifier') or {}
    if 'top_k' in classifier:
        if not isinstance(classifier['top_k'], int) or classifier['top_k'] <= 0:
            return False, "models.classifier.top_k must be a positive integer"

    # Optional loop settings
    loop = config.get('loop') or {}
    if 'refresh_hz' in loop:
        if not _is_number(loop['refresh_hz']) or loop['refresh_hz'] <= 0:
            return False, "loop.refresh_hz must be a positive number"
    if loop.get('inference_timeout_s') is not None:
        if not _is_number(loop['inference_timeout_s']) or loop['inference_timeout_s'] <= 0:
            return False, "loop.inference_timeout_s must be a positive number"
    if 'fps_window_ms' in loop:
        if not _is_number(loop['fps_window_ms']) or loop['fps_window_ms'] <= 0:
            return False, "loop.fps_window_ms must be a positive number"

    # Optional aggregator settings
    aggregator = config.get('aggregator') or {}
    if 'window_size' in aggregator:
        if not isinstance(aggregator['window_size'], int) or aggregator['window_size'] <= 0:
            return False, "aggregator.window_size must be a positive integer"

    # Optional web settings
    web = config.get('web') or {}
    if 'port' in web:
        if not isinstance(web['port'], int) or not (0 < web['port'] < 65536):
            return False, "web.port must be a valid TCP port"

    # Validate log settings
    if not isinstance(config['log_path'], str) or not config['log_path']:
        return False, "log_path must be a non-empty string"
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def main():
    """Main application function."""
    # Parse command-line arguments
    parser = argparse.ArgumentParser(description='Vision Dashboard - real-time detection and classification')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--host', type=str, default=None,
                        help='Web server host (overrides web.host)')
    parser.add_argument('--port', type=int, default=None,
                        help='Web server port (overrides web.port)')
    args = parser.parse_args()

    # Load configuration
    raw_config = load_config(args.config)

    # Validate configuration
    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    # Setup logging
    setup_logging(raw_config['log_path'], raw_config['log_level'])

    config = Config.from_dict(raw_config)
    host = args.host or config.web.host
    port = args.port or config.web.port

    logging.info("Starting Vision Dashboard")
    logging.info(
        f"Models: detector={config.models.detector.model} classifier={config.models.classifier.model}"
    )

    ctx = RuntimeContext.from_config(config, web_state)
    runtime = DashboardRuntime(ctx)

    try:
        uvicorn.run(
            create_app(runtime),
            host=host,
            port=port,
            log_level=config.log_level.lower(),
        )
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    finally:
        logging.info("Vision Dashboard stopped")


if __name__ == "__main__":
    main()
