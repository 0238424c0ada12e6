"""Media type allow-list and content sniffing for uploads.

The declared type is only a hint: it is normalized, completed from the file
name when missing, and checked against the leading bytes of the payload.
"""

import mimetypes
from pathlib import PurePath

from algoshelf.errors import UnsupportedMediaTypeError

SNIFF_SIZE = 4096  # Enough for tar's "ustar" marker at offset 257 and ftyp brands

OCTET_STREAM = "application/octet-stream"

RAW_IMAGE_TYPES = frozenset(
    {
        "image/x-canon-cr2",
        "image/x-canon-cr3",
        "image/x-nikon-nef",
        "image/x-sony-arw",
        "image/x-adobe-dng",
        "image/x-olympus-orf",
        "image/x-panasonic-rw2",
        "image/x-fuji-raf",
        "image/x-pentax-pef",
    }
)

ALLOWED_MIME_TYPES = frozenset(
    {
        # Images
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/bmp",
        "image/tiff",
        "image/svg+xml",
        "image/x-icon",
        "image/heic",
        "image/heic-sequence",
        "image/heif",
        "image/heif-sequence",
        "image/avif",
        "image/jxl",
        *RAW_IMAGE_TYPES,
        # Video
        "video/mp4",
        "video/x-m4v",
        "video/quicktime",
        "video/webm",
        "video/x-matroska",
        "video/x-msvideo",
        "video/mpeg",
        "video/mp2t",
        "video/3gpp",
        "video/ogg",
        "video/h265",
        # Audio
        "audio/mpeg",
        "audio/mp4",
        "audio/aac",
        "audio/ogg",
        "audio/opus",
        "audio/wav",
        "audio/flac",
        "audio/aiff",
        "audio/webm",
        "audio/x-ape",
        "audio/x-wavpack",
        "audio/x-dsf",
        "audio/x-dff",
        "audio/x-matroska",
        # Documents
        "application/pdf",
        "application/msword",
        "application/vnd.ms-excel",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "application/vnd.oasis.opendocument.text",
        "application/vnd.oasis.opendocument.spreadsheet",
        "application/vnd.oasis.opendocument.presentation",
        "application/epub+zip",
        "application/rtf",
        "application/json",
        "application/x-ipynb+json",
        "text/plain",
        "text/markdown",
        "text/csv",
        # Source code
        "text/x-python",
        "text/x-c",
        "text/x-c++",
        "text/x-java",
        "text/x-go",
        "text/x-rust",
        "text/javascript",
        "text/x-typescript",
        # Archives
        "application/zip",
        "application/gzip",
        "application/x-tar",
        "application/x-7z-compressed",
    }
)

# Payloads that are never accepted whatever they are declared as
BLOCKED_MIME_TYPES = frozenset(
    {
        "application/x-msdownload",
        "application/x-executable",
        "application/x-mach-binary",
        "text/html",
    }
)

MIME_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "image/x-png": "image/png",
    "image/vnd.microsoft.icon": "image/x-icon",
    "audio/mp3": "audio/mpeg",
    "audio/x-flac": "audio/flac",
    "audio/x-wav": "audio/wav",
    "audio/wave": "audio/wav",
    "audio/vnd.wave": "audio/wav",
    "audio/x-aiff": "audio/aiff",
    "audio/x-m4a": "audio/mp4",
    "video/avi": "video/x-msvideo",
    "text/x-markdown": "text/markdown",
    "application/x-zip-compressed": "application/zip",
    "application/x-gzip": "application/gzip",
}

EXTENSION_MIME_TYPES = {
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".ipynb": "application/x-ipynb+json",
    ".py": "text/x-python",
    ".c": "text/x-c",
    ".h": "text/x-c",
    ".cpp": "text/x-c++",
    ".cc": "text/x-c++",
    ".hpp": "text/x-c++",
    ".java": "text/x-java",
    ".go": "text/x-go",
    ".rs": "text/x-rust",
    ".ts": "text/x-typescript",
    ".js": "text/javascript",
    ".cr2": "image/x-canon-cr2",
    ".cr3": "image/x-canon-cr3",
    ".nef": "image/x-nikon-nef",
    ".arw": "image/x-sony-arw",
    ".dng": "image/x-adobe-dng",
    ".orf": "image/x-olympus-orf",
    ".rw2": "image/x-panasonic-rw2",
    ".raf": "image/x-fuji-raf",
    ".pef": "image/x-pentax-pef",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".avif": "image/avif",
    ".jxl": "image/jxl",
    ".mkv": "video/x-matroska",
    ".mka": "audio/x-matroska",
    ".webm": "video/webm",
    ".m4v": "video/x-m4v",
    ".m4a": "audio/mp4",
    ".hevc": "video/h265",
    ".flac": "audio/flac",
    ".opus": "audio/opus",
    ".ape": "audio/x-ape",
    ".wv": "audio/x-wavpack",
    ".dsf": "audio/x-dsf",
    ".dff": "audio/x-dff",
    ".aif": "audio/aiff",
    ".aiff": "audio/aiff",
    ".7z": "application/x-7z-compressed",
}

# Sniffed container formats and the more specific declared types they may carry
SNIFF_REFINEMENTS: dict[str, frozenset[str]] = {
    "image/tiff": RAW_IMAGE_TYPES - {"image/x-canon-cr3", "image/x-fuji-raf"},
    "image/heif": frozenset({"image/heic", "image/heif-sequence", "image/heic-sequence"}),
    "video/mp4": frozenset({"video/x-m4v", "audio/mp4", "video/3gpp", "audio/aac"}),
    "video/x-matroska": frozenset({"video/webm", "audio/webm", "audio/x-matroska"}),
    "video/webm": frozenset({"audio/webm"}),
    "audio/ogg": frozenset({"audio/opus", "video/ogg"}),
    "application/zip": frozenset(
        {
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "application/vnd.openxmlformats-officedocument.presentationml.presentation",
            "application/vnd.oasis.opendocument.text",
            "application/vnd.oasis.opendocument.spreadsheet",
            "application/vnd.oasis.opendocument.presentation",
            "application/epub+zip",
        }
    ),
    "application/x-ole-storage": frozenset(
        {"application/msword", "application/vnd.ms-excel", "application/vnd.ms-powerpoint"}
    ),
}

FTYP_BRANDS = {
    b"heic": "image/heic",
    b"heix": "image/heic",
    b"heim": "image/heic",
    b"heis": "image/heic",
    b"hevc": "image/heic-sequence",
    b"hevx": "image/heic-sequence",
    b"mif1": "image/heif",
    b"msf1": "image/heif-sequence",
    b"avif": "image/avif",
    b"avis": "image/avif",
    b"crx ": "image/x-canon-cr3",
    b"qt  ": "video/quicktime",
    b"M4A ": "audio/mp4",
    b"M4B ": "audio/mp4",
    b"M4V ": "video/x-m4v",
    b"3gp4": "video/3gpp",
    b"3gp5": "video/3gpp",
    b"3g2a": "video/3gpp",
}

MAGIC_PREFIXES: list[tuple[bytes, str]] = [
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\xff\x0a", "image/jxl"),
    (b"\x00\x00\x00\x0cJXL \r\n\x87\n", "image/jxl"),
    (b"FUJIFILMCCD-RAW", "image/x-fuji-raf"),
    (b"IIRO", "image/x-olympus-orf"),
    (b"IIRS", "image/x-olympus-orf"),
    (b"IIU\x00", "image/x-panasonic-rw2"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"fLaC", "audio/flac"),
    (b"OggS", "audio/ogg"),
    (b"ID3", "audio/mpeg"),
    (b"MAC ", "audio/x-ape"),
    (b"wvpk", "audio/x-wavpack"),
    (b"DSD ", "audio/x-dsf"),
    (b"FRM8", "audio/x-dff"),
    (b"\x00\x00\x01\xba", "video/mpeg"),
    (b"\x00\x00\x01\xb3", "video/mpeg"),
    (b"%PDF-", "application/pdf"),
    (b"{\\rtf", "application/rtf"),
    (b"PK\x03\x04", "application/zip"),
    (b"PK\x05\x06", "application/zip"),
    (b"\x1f\x8b", "application/gzip"),
    (b"7z\xbc\xaf\x27\x1c", "application/x-7z-compressed"),
    (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", "application/x-ole-storage"),
    (b"MZ", "application/x-msdownload"),
    (b"\x7fELF", "application/x-executable"),
    (b"\xfe\xed\xfa\xce", "application/x-mach-binary"),
    (b"\xfe\xed\xfa\xcf", "application/x-mach-binary"),
    (b"\xce\xfa\xed\xfe", "application/x-mach-binary"),
    (b"\xcf\xfa\xed\xfe", "application/x-mach-binary"),
]

RIFF_FORMS = {b"WEBP": "image/webp", b"WAVE": "audio/wav", b"AVI ": "video/x-msvideo"}
IFF_FORMS = {b"AIFF": "audio/aiff", b"AIFC": "audio/aiff"}


def normalize_mime_type(value: str | None) -> str:
    """Strip parameters, lower-case and resolve common aliases."""
    if not value:
        return ""
    mime_type = value.split(";", 1)[0].strip().lower()
    return MIME_ALIASES.get(mime_type, mime_type)


def guess_from_filename(filename: str) -> str | None:
    suffix = PurePath(filename).suffix.lower()
    if suffix in EXTENSION_MIME_TYPES:
        return EXTENSION_MIME_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(filename, strict=False)
    return normalize_mime_type(guessed) or None


def _sniff_iso_bmff(head: bytes) -> str | None:
    if len(head) < 12 or head[4:8] != b"ftyp":
        return None
    return FTYP_BRANDS.get(head[8:12], "video/mp4")


def _sniff_tiff_raw(head: bytes) -> str | None:
    """Canon CR2 is a TIFF with a 'CR' marker at offset 8."""
    if head[:4] == b"II*\x00" and head[8:10] == b"CR":
        return "image/x-canon-cr2"
    return None


def _sniff_text(head: bytes) -> str | None:
    start = head.lstrip()[:15].lower()
    if start.startswith((b"<!doctype html", b"<html")):
        return "text/html"
    if start.startswith(b"<svg") or (start.startswith(b"<?xml") and b"<svg" in head.lower()):
        return "image/svg+xml"
    return None


def sniff_mime_type(head: bytes) -> str | None:
    """Identify a payload from its leading bytes, None when nothing matches."""
    for sniffer in (_sniff_iso_bmff, _sniff_tiff_raw):
        found = sniffer(head)
        if found:
            return found

    if head[:4] == b"RIFF" and head[8:12] in RIFF_FORMS:
        return RIFF_FORMS[head[8:12]]
    if head[:4] == b"FORM" and head[8:12] in IFF_FORMS:
        return IFF_FORMS[head[8:12]]
    if head[:4] == b"\x1a\x45\xdf\xa3":
        return "video/webm" if b"webm" in head[:64] else "video/x-matroska"
    if len(head) > 376 and head[0] == head[188] == head[376] == 0x47:
        return "video/mp2t"
    if head[257:262] == b"ustar":
        return "application/x-tar"
    if head[:2] in (b"\xff\xfb", b"\xff\xf3", b"\xff\xf2"):
        return "audio/mpeg"
    if head[:2] in (b"\xff\xf1", b"\xff\xf9"):
        return "audio/aac"

    for prefix, mime_type in MAGIC_PREFIXES:
        if head.startswith(prefix):
            return mime_type

    return _sniff_text(head)


def resolve_mime_type(declared: str | None, filename: str, head: bytes) -> str:
    """Decide the media type to store for an upload.

    Raises:
        UnsupportedMediaTypeError: payload is blocked or the result is not allow-listed
    """
    mime_type = normalize_mime_type(declared)
    if not mime_type or mime_type == OCTET_STREAM:
        mime_type = guess_from_filename(filename) or OCTET_STREAM

    sniffed = sniff_mime_type(head)
    if sniffed is not None:
        if sniffed in BLOCKED_MIME_TYPES:
            raise UnsupportedMediaTypeError(sniffed)
        if mime_type != sniffed and mime_type not in SNIFF_REFINEMENTS.get(sniffed, frozenset()):
            mime_type = sniffed

    if mime_type not in ALLOWED_MIME_TYPES:
        raise UnsupportedMediaTypeError(mime_type)
    return mime_type
