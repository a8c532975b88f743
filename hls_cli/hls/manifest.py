"""
Parses HLS variant playlists into ordered segment descriptors.

Only the directives needed to locate and decrypt segments are interpreted;
everything else in the playlist is ignored.
"""

import logging
import re

from hls_cli.exceptions import ManifestParseError, NoSegmentsFound, NotVariantPlaylist
from hls_cli.models.segment import (
    EncryptionInfo,
    EncryptionMethod,
    SegmentDescriptor,
    StreamMetadata,
)
from hls_cli.utils.url import resolve_url

log = logging.getLogger(__name__)

MASTER_PLAYLIST_TAG = "#EXT-X-STREAM-INF"
TARGET_DURATION_TAG = "#EXT-X-TARGETDURATION:"
MEDIA_SEQUENCE_TAG = "#EXT-X-MEDIA-SEQUENCE:"
KEY_TAG = "#EXT-X-KEY:"
MAP_TAG = "#EXT-X-MAP:"

# KEY=VALUE or KEY="VALUE", comma separated
_ATTRIBUTE_REGEX = re.compile(r'([A-Z0-9-]+)=(?:"([^"]*)"|([^,]*))')
_LEADING_FLOAT_REGEX = re.compile(r"\s*([+-]?\d+(?:\.\d*)?|[+-]?\.\d+)")
_LEADING_INT_REGEX = re.compile(r"\s*([+-]?\d+)")


def parse_attributes(attribute_list: str) -> dict[str, str]:
    """Parses an HLS attribute list into a dict of raw string values."""
    return {
        match.group(1): (
            match.group(2) if match.group(2) is not None else match.group(3)
        )
        for match in _ATTRIBUTE_REGEX.finditer(attribute_list)
    }


def parse_hex_iv(value: str) -> bytes:
    """Decodes an IV attribute (hex, optional 0x prefix) into 16 bytes."""
    hex_digits = value[2:] if value[:2] in ("0x", "0X") else value
    try:
        iv = bytes.fromhex(hex_digits)
    except ValueError as e:
        raise ManifestParseError(f"Invalid IV attribute '{value}': {e}") from e
    if len(iv) != 16:
        raise ManifestParseError(
            f"Invalid IV attribute '{value}': expected 16 bytes, got {len(iv)}."
        )
    return iv


def _parse_number(line: str, prefix: str, regex: re.Pattern, cast):
    match = regex.match(line[len(prefix) :])
    if not match:
        log.debug(f"Ignoring malformed directive: {line}")
        return None
    return cast(match.group(1))


def _parse_key(line: str, base_url: str) -> EncryptionInfo | None:
    attrs = parse_attributes(line[len(KEY_TAG) :])
    method = attrs.get("METHOD")
    if not method or method == EncryptionMethod.NONE.value:
        return None

    if method != EncryptionMethod.AES_128.value:
        log.warning(
            f"[yellow]Unsupported encryption method: {method}. "
            "Only AES-128 is supported.[/yellow]"
        )

    uri = attrs.get("URI")
    iv = attrs.get("IV")
    return EncryptionInfo(
        method=method,
        key_uri=resolve_url(base_url, uri) if uri else None,
        iv=parse_hex_iv(iv) if iv else None,
    )


def parse_manifest(
    manifest_text: str, base_url: str
) -> tuple[list[SegmentDescriptor], StreamMetadata]:
    """
    Turns variant playlist text into segment descriptors and stream metadata.

    Args:
        manifest_text: The playlist body.
        base_url: The URL the playlist was fetched from; relative URIs resolve
            against it.

    Returns:
        The descriptors in playlist order (their `index` is the reassembly key)
        and a StreamMetadata summary.

    Raises:
        NotVariantPlaylist: If the text is a master playlist.
        NoSegmentsFound: If no segment URI is present.
        ManifestParseError: If an explicit IV is malformed.
    """
    if MASTER_PLAYLIST_TAG in manifest_text:
        raise NotVariantPlaylist()

    segments: list[SegmentDescriptor] = []
    target_duration = 0.0
    media_sequence = 0
    current_key: EncryptionInfo | None = None
    methods_seen: set[str] = set()

    for raw_line in manifest_text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith(TARGET_DURATION_TAG):
            value = _parse_number(line, TARGET_DURATION_TAG, _LEADING_FLOAT_REGEX, float)
            if value is not None:
                target_duration = value

        elif line.startswith(MEDIA_SEQUENCE_TAG):
            value = _parse_number(line, MEDIA_SEQUENCE_TAG, _LEADING_INT_REGEX, int)
            if value is not None:
                media_sequence = value

        elif line.startswith(KEY_TAG):
            current_key = _parse_key(line, base_url)
            if current_key:
                methods_seen.add(current_key.method)

        elif line.startswith(MAP_TAG):
            uri = parse_attributes(line[len(MAP_TAG) :]).get("URI")
            if uri:
                segments.append(
                    SegmentDescriptor(
                        index=len(segments),
                        url=resolve_url(base_url, uri),
                        sequence_id=media_sequence + len(segments),
                        is_init_segment=True,
                        encryption=current_key,
                    )
                )

        elif not line.startswith("#"):
            # Sequence ids count init segments too; see DESIGN.md.
            segments.append(
                SegmentDescriptor(
                    index=len(segments),
                    url=resolve_url(base_url, line),
                    sequence_id=media_sequence + len(segments),
                    encryption=current_key,
                )
            )

    if not segments:
        raise NoSegmentsFound()

    metadata = StreamMetadata(
        segment_count=len(segments),
        target_duration=target_duration,
        is_encrypted=bool(methods_seen),
        encryption_methods=frozenset(methods_seen),
    )
    log.debug(
        f"Parsed {metadata.segment_count} segments "
        f"(target {target_duration}s, media sequence {media_sequence})."
    )
    return segments, metadata
