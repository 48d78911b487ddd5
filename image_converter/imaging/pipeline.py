from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from image_converter.config import DEFAULT_MAX_PIXELS
from image_converter.imaging.decoder import decode_source
from image_converter.imaging.encoder import encode
from image_converter.imaging.exceptions import DecodeError, EncodeError, ImageConversionError
from image_converter.imaging.types import (
    ConversionResult,
    EncodeOptions,
    PixelRaster,
    SourceImage,
    TargetFormat,
)

logger = logging.getLogger(__name__)


class ConversionState(str, Enum):
    IDLE = "idle"
    DECODING = "decoding"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ConversionOutcome:
    state: ConversionState
    result: Optional[ConversionResult] = None
    error: Optional[ImageConversionError] = None

    @property
    def ok(self) -> bool:
        return self.state is ConversionState.DONE

    def unwrap(self) -> ConversionResult:
        if self.error is not None:
            raise self.error
        if self.result is None:
            raise RuntimeError(f"Conversion finished in state {self.state.value} without a result")
        return self.result


class ConversionPipeline:
    """Single-use decode -> encode run.

    Moves through ``IDLE -> DECODING -> ENCODING -> DONE``; either working
    state may end in ``FAILED``. Errors are returned in the outcome, never
    raised. A pipeline cannot be run twice.
    """

    def __init__(
        self,
        source: SourceImage,
        target: TargetFormat,
        options: Optional[EncodeOptions] = None,
        *,
        max_pixels: int = DEFAULT_MAX_PIXELS,
    ) -> None:
        self._source: Optional[SourceImage] = source
        self._target = TargetFormat.parse(target)
        self._options = options or EncodeOptions()
        self._max_pixels = max_pixels
        self._state = ConversionState.IDLE
        self._outcome: Optional[ConversionOutcome] = None

    @property
    def state(self) -> ConversionState:
        return self._state

    @property
    def outcome(self) -> Optional[ConversionOutcome]:
        return self._outcome

    @property
    def target(self) -> TargetFormat:
        return self._target

    def run(self) -> ConversionOutcome:
        source = self._start()
        try:
            self._state = ConversionState.DECODING
            raster = self._decode(source)
            self._state = ConversionState.ENCODING
            result = self._encode(raster)
        except ImageConversionError as exc:
            return self._fail(exc)
        return self._finish(result)

    async def run_async(self) -> ConversionOutcome:
        """Run both stages in worker threads.

        Each stage is a suspension point; cancelling the awaiting task leaves
        the pipeline in ``CANCELLED``.
        """
        source = self._start()
        try:
            self._state = ConversionState.DECODING
            raster = await asyncio.to_thread(self._decode, source)
            self._state = ConversionState.ENCODING
            result = await asyncio.to_thread(self._encode, raster)
        except ImageConversionError as exc:
            return self._fail(exc)
        except asyncio.CancelledError:
            logger.debug("Conversion to %s cancelled while %s", self._target.name, self._state.value)
            self._state = ConversionState.CANCELLED
            raise
        return self._finish(result)

    def _start(self) -> SourceImage:
        if self._state is not ConversionState.IDLE or self._source is None:
            raise RuntimeError(f"Pipeline already used (state={self._state.value})")
        source = self._source
        self._source = None
        return source

    def _decode(self, source: SourceImage) -> PixelRaster:
        return decode_source(source, max_pixels=self._max_pixels)

    def _encode(self, raster: PixelRaster) -> ConversionResult:
        return encode(raster, self._target, self._options, max_pixels=self._max_pixels)

    def _fail(self, exc: ImageConversionError) -> ConversionOutcome:
        stage = "decode" if isinstance(exc, DecodeError) else "encode" if isinstance(exc, EncodeError) else "convert"
        logger.warning("Failed to %s image for %s: %s", stage, self._target.name, exc)
        self._state = ConversionState.FAILED
        self._outcome = ConversionOutcome(state=self._state, error=exc)
        return self._outcome

    def _finish(self, result: ConversionResult) -> ConversionOutcome:
        self._state = ConversionState.DONE
        self._outcome = ConversionOutcome(state=self._state, result=result)
        return self._outcome


def convert(
    source: SourceImage,
    target: TargetFormat,
    options: Optional[EncodeOptions] = None,
    *,
    max_pixels: int = DEFAULT_MAX_PIXELS,
) -> ConversionOutcome:
    return ConversionPipeline(source, target, options, max_pixels=max_pixels).run()
