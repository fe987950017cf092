# Page Data Codec: compact storage form of page data
from .codec import compress, compressed_size_bytes, expand
from .models import CompactPageData

__all__ = ["CompactPageData", "compress", "compressed_size_bytes", "expand"]
