from .batch import EXECUTORS, make_items, run_batch
from .image import SUPPORTED_IMAGE_FORMATS, is_supported_image, process_image, process_photo

__all__ = [
    "process_image",
    "process_photo",
    "run_batch",
    "make_items",
    "is_supported_image",
    "SUPPORTED_IMAGE_FORMATS",
    "EXECUTORS",
]
