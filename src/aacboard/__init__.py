from .category import AACCategory, AACPage, InvalidKeyError, InvalidTextError, NotFoundError
from .mapping_io import (
    MappingFileError,
    format_mapping_text,
    parse_mapping_text,
    read_mapping_file,
    write_mapping_file,
)
from .mappings import AACMappings

__all__ = [
    "AACCategory",
    "AACMappings",
    "AACPage",
    "InvalidKeyError",
    "InvalidTextError",
    "NotFoundError",
    "MappingFileError",
    "parse_mapping_text",
    "format_mapping_text",
    "read_mapping_file",
    "write_mapping_file",
]
