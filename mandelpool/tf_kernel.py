"""TensorFlow escape-time kernel.

Imported lazily by the ``tensorflow`` row kernel so the numpy and pure
Python paths never pay for the TensorFlow import. TensorFlow log verbosity
is left to the caller (see ``render.py``).
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import tensorflow as tf

from .pixel import HORIZON_SQUARED

logger = logging.getLogger(__name__)

_DEVICE: Optional[str] = None


def select_device() -> str:
    """Place computation on the first visible GPU, falling back to the CPU."""

    global _DEVICE
    if _DEVICE is not None:
        return _DEVICE

    gpus = tf.config.list_physical_devices("GPU")
    if gpus:
        try:
            for gpu in gpus:
                tf.config.experimental.set_memory_growth(gpu, True)
            _DEVICE = "/GPU:0"
            logger.debug("GPU found, using %s", gpus[0].name)
        except RuntimeError as exc:
            logger.debug("GPU setup failed (%s), using CPU", exc)
            _DEVICE = "/CPU:0"
    else:
        _DEVICE = "/CPU:0"
        logger.debug("No GPU found, using CPU")
    return _DEVICE


@tf.function
def _escape_step(zr: tf.Tensor, zi: tf.Tensor, cr: tf.Tensor, ci: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Advance every still-bounded orbit by one iteration."""

    zr2 = zr * zr
    zi2 = zi * zi
    horizon = tf.constant(HORIZON_SQUARED, dtype=zr.dtype)
    active = tf.logical_and(active, (zr2 + zi2) < horizon)
    zi = tf.where(active, 2.0 * zr * zi + ci, zi)
    zr = tf.where(active, zr2 - zi2 + cr, zr)
    ns = ns + tf.cast(active, tf.int32)
    return zr, zi, ns, active


@tf.function
def _escape_run(cr: tf.Tensor, ci: tf.Tensor, max_iterations: tf.Tensor) -> tf.Tensor:
    """Iterate the escape-time loop with a TensorFlow while loop."""

    max_iterations = tf.cast(max_iterations, tf.int32)
    i = tf.constant(0, dtype=tf.int32)
    zr = tf.zeros_like(cr)
    zi = tf.zeros_like(ci)
    ns = tf.zeros(tf.shape(cr), tf.int32)
    active = tf.ones(tf.shape(cr), tf.bool)

    def cond(i, zr, zi, ns, active):
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i, zr, zi, ns, active):
        zr, zi, ns, active = _escape_step(zr, zi, cr, ci, ns, active)
        return i + 1, zr, zi, ns, active

    _, _, _, ns, _ = tf.while_loop(cond, body, (i, zr, zi, ns, active))
    return ns


def escape_counts(cr: np.ndarray, ci: np.ndarray, max_iter: int, *, device: Optional[str] = None) -> np.ndarray:
    """Return escape counts for the points ``cr + ci*i``."""

    with tf.device(device if device is not None else select_device()):
        cr_tf = tf.convert_to_tensor(cr, dtype=tf.float64)
        ci_tf = tf.convert_to_tensor(ci, dtype=tf.float64)
        ns = _escape_run(cr_tf, ci_tf, tf.constant(max_iter, dtype=tf.int32))
    return ns.numpy().astype(np.int64)
