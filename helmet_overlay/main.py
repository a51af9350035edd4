# helmet_overlay/main.py
import cv2
import logging
import os
import sys
import time
import yaml
import numpy as np
from collections import deque

from helmet_engine.camera.camera_manager import CameraManager
from helmet_engine.common.config import load_config, configure_logging
from helmet_engine.processing.overlay_processor import OverlayProcessor
from helmet_engine.tracking.face_tracker import FaceTracker
from helmet_engine.visualization.visualizer import HelmetVisualizer

logger = logging.getLogger("helmet_overlay")

WINDOW_NAME = 'Helmet Overlay'

def handle_key(key: int, processor: OverlayProcessor, camera: CameraManager, config: dict) -> bool:
    """Applies a keypress to the overlay; returns False when the app should quit."""
    if key == ord('q'):
        logger.info("Shutdown signal received.")
        return False
    if key == ord('f'):
        target = processor.toggle()
        logger.info(f"Faceplate {'opening' if target >= 0.5 else 'closing'}")
    elif key == ord('o'):
        processor.toggle(open=True)
    elif key == ord('c'):
        processor.toggle(open=False)
    elif key in (ord('['), ord(']')):
        step = config['animation']['scrub_step']
        direction = 1 if key == ord(']') else -1
        processor.set_progress(processor.animator.target + direction * step)
    elif key == ord('n'):
        sources = config['camera']['sources']
        if len(sources) < 2:
            logger.warning("Only one camera source configured.")
        else:
            index = sources.index(camera.source) if camera.source in sources else -1
            next_source = sources[(index + 1) % len(sources)]
            try:
                camera.switch_source(next_source)
                processor.reset()
            except IOError as e:
                logger.error(f"Camera switch failed: {e}")
    return True

def main():
    """
    The main application loop.
    Initializes, runs, and gracefully shuts down the overlay components.
    """
    script_dir = os.path.dirname(os.path.abspath(__file__))
    config_path = sys.argv[1] if len(sys.argv) > 1 else os.path.join(script_dir, 'config.yaml')

    try:
        config = load_config(config_path)
    except FileNotFoundError:
        print(f"ERROR: Configuration file '{config_path}' not found.")
        return
    except yaml.YAMLError as e:
        print(f"ERROR: Failed to parse configuration file '{config_path}'. {e}")
        return

    configure_logging(config['logging'])
    fps_history = deque(maxlen=100)
    processor = None

    try:
        with CameraManager(config['camera']) as camera:
            processor = OverlayProcessor(config, tracker=FaceTracker(config['tracking']))
            visualizer = HelmetVisualizer(config['visualization'])

            while camera.is_running():
                frame_start_time = time.perf_counter()

                frame, metadata = camera.get_frame()
                if frame is None:
                    time.sleep(0.001)
                    continue

                # --- Core Processing Pipeline ---
                result = processor.process_frame(frame, metadata)

                # --- FPS Calculation ---
                latency = time.perf_counter() - frame_start_time
                current_fps = 1.0 / latency if latency > 0 else 0
                fps_history.append(current_fps)
                avg_fps = np.mean(fps_history) if fps_history else 0

                # --- Visualization ---
                output_frame = visualizer.render(frame, result, avg_fps)
                cv2.imshow(WINDOW_NAME, output_frame)

                key = cv2.waitKey(1) & 0xFF
                if key != 0xFF and not handle_key(key, processor, camera, config):
                    break

    except (IOError, yaml.YAMLError) as e:
        logger.error(f"Failed to initialize. {e}")
    except KeyError as e:
        logger.error(f"Missing configuration key: {e}. Please check '{config_path}'.")
    except Exception:
        logger.exception("An unexpected critical error occurred")
    finally:
        if processor is not None:
            processor.close()
        cv2.destroyAllWindows()
        logger.info("Application terminated.")

if __name__ == "__main__":
    main()
