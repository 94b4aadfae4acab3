# Compositing defaults
DEFAULT_OPACITY: float = 0.5  # Global watermark opacity (0.0 to 1.0)
DEFAULT_MARGIN: int = 20  # Pixels between watermark and bottom-right edges
DEFAULT_SCALE: float = 0.20  # Watermark width relative to base width
MIN_WATERMARK_SIZE: int = 1  # Scaled watermark never collapses below 1px

# Channel limits
CHANNEL_MAX: int = 255
OPAQUE_ALPHA: int = 255

# Archive layout
ENTRY_NAME_TEMPLATE: str = "watermarked_{index}.png"  # 1-based index
MANIFEST_NAME: str = "manifest.json"
ARCHIVE_NAME: str = "hasil_watermark.zip"
ARCHIVE_CONTENT_TYPE: str = "application/zip"
PROCESS_TIME_HEADER: str = "X-Process-Time"

# Upload roles
PHOTOS_FIELD: str = "photos"
WATERMARK_FIELD: str = "watermark"

# Output encoding
PNG_COMPRESS_LEVEL: int = 6
