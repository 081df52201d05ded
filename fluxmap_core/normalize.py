from __future__ import annotations

import logging

from fluxmap_core.encodings import EncodingStore
from fluxmap_core.settings import EncodingSettings

LOGGER = logging.getLogger(__name__)


def normalize_histogram_height(store: EncodingStore, settings: EncodingSettings) -> int:
    """Stretch every histogram so its tallest bar reaches the side's target height.

    Box glyphs (`unscale`) keep their data-driven height. Fill colors are refreshed
    from the side colors for the encoding's condition.
    """

    scaled = 0
    for encoding in store:
        if encoding.unscale:
            continue
        encoding.fill = settings.side_colors(encoding.side).lookup(encoding.condition)
        height = encoding.raw_height
        if height <= 0.0:
            LOGGER.debug("encoding %s has zero height; leaving unscaled", encoding.encoding_id)
            continue
        encoding.scale_y = settings.max_height(encoding.side) / height
        scaled += 1
    return scaled


def unscale_histogram_children(store: EncodingStore) -> None:
    for encoding in store:
        if encoding.scale_y == 0.0:
            continue
        for decoration in encoding.decorations:
            decoration.scale_y = 1.0 / encoding.scale_y
