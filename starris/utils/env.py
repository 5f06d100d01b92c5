"""
Runtime environment setup for the Sionna-backed channel generators.

TensorFlow reads its device and logging configuration from environment
variables at import time, so these helpers must run before the channel
providers import Sionna.
"""

import os
from typing import Optional


def configure_env(force_cpu: bool = False, gpu_num: Optional[int] = None) -> None:
    """
    Configure environment variables BEFORE importing TensorFlow/Sionna.

    Args:
        force_cpu: If True, hide every GPU from TensorFlow.
        gpu_num: GPU device number to expose (None = leave as is).
    """
    os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")

    if force_cpu:
        os.environ["CUDA_VISIBLE_DEVICES"] = "-1"
    elif gpu_num is not None and os.getenv("CUDA_VISIBLE_DEVICES") is None:
        os.environ["CUDA_VISIBLE_DEVICES"] = f"{gpu_num}"


def setup_gpu() -> bool:
    """
    Enable memory growth on the first visible GPU and silence TensorFlow.

    The channel generators only need small tensors; memory growth keeps
    TensorFlow from reserving the whole device.

    Returns:
        True if TensorFlow is importable (GPU or CPU), False otherwise.
    """
    try:
        import tensorflow as tf  # imported late to respect env config
    except ImportError:
        print("⚠ TensorFlow not available; Sionna channel generators will be skipped")
        return False

    tf.get_logger().setLevel('ERROR')
    gpus = tf.config.list_physical_devices('GPU')
    if gpus:
        try:
            tf.config.experimental.set_memory_growth(gpus[0], True)
            print(f"✓ Using GPU: {gpus[0]}")
        except RuntimeError as e:
            print(f"Warning: {e}")
    else:
        print("⚠ No GPU found, using CPU")
    return True
