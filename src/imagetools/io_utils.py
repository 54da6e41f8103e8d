import logging
from pathlib import Path

import cv2
import numpy as np
import psutil
from PIL import Image

from .bridge import from_pil, to_pil

logger = logging.getLogger(__name__)


def get_available_memory_mb():
    return psutil.virtual_memory().available / (1024 * 1024)


def load_surface(file_path):
    """
    Decode an image file into a surface, keeping the closest encoding.

    Logs the estimated decoded size and warns when it exceeds half of the
    available memory.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {file_path}")

    with Image.open(path) as img:
        width, height = img.size
        # Worst case: 16-bit samples in four channels
        estimated_size_mb = (width * height * 8) / (1024 * 1024)
        available_ram_mb = get_available_memory_mb()
        threshold_mb = available_ram_mb * 0.5

        logger.info(f"Image Size: {width}x{height} {img.mode} (~{estimated_size_mb:.2f} MB)")
        logger.info(f"Available RAM: {available_ram_mb:.2f} MB (Threshold: {threshold_mb:.2f} MB)")
        if estimated_size_mb > threshold_mb:
            logger.warning("Image may not fit in memory once decoded")

        img.load()
        return from_pil(img)


def save_surface(file_path, surface) -> Path:
    """
    Write a surface as straight 8-bit RGBA. The file extension picks the
    format.

    Raises:
        ValueError: If the surface is empty or OpenCV cannot encode it
    """
    path = Path(file_path)
    if surface is None or surface.bounds.empty():
        raise ValueError(f"Cannot save an empty surface to {path}")

    path.parent.mkdir(parents=True, exist_ok=True)
    rgba = np.asarray(to_pil(surface).convert("RGBA"))
    bgra = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA)
    if not cv2.imwrite(str(path), bgra):
        raise ValueError(f"Could not write image to {path}")
    logger.info(f"Saved {rgba.shape[1]}x{rgba.shape[0]} image to {path}")
    return path
