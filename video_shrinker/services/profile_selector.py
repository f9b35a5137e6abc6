"""
Maps a container extension and a probed resolution to transcoder arguments.
"""

import re
from typing import Mapping, Optional, Sequence, Tuple

from loguru import logger

from ..config.video import (
    DEFAULT_CODEC_ARGS,
    DEFAULT_THREAD_COUNT,
    EXTENSION_CODEC_ARGS,
    RESOLUTION_SCALING_ARGS,
    always_on_args,
)
from ..domain.exceptions import ConfigurationException
from ..domain.job_models import EncodingProfile

RESOLUTION_KEY = re.compile(r"^\d+x\d+$")


def _validate_args(name: str, args) -> Tuple[str, ...]:
    if isinstance(args, str) or not isinstance(args, Sequence) or not args:
        raise ConfigurationException(f"{name}: arguments must be a non-empty list")
    if not all(isinstance(a, str) and a for a in args):
        raise ConfigurationException(f"{name}: every argument must be a non-empty string")
    return tuple(args)


def copies_video(codec_args: Sequence[str]) -> bool:
    """True when the codec group stream-copies video, which rules out scaling filters."""
    for flag, value in zip(codec_args, codec_args[1:]):
        if flag in ("-c:v", "-vcodec", "-c") and value == "copy":
            return True
    return False


class EncodingProfileSelector:
    """
    Chooses the `EncodingProfile` for a file from two lookup tables.

    The extension table has a default entry, so every extension maps to
    something; the resolution table only matches exact "WIDTHxHEIGHT" strings
    and an unmatched or unknown resolution means no scaling. Both tables are
    validated when the selector is built, never while selecting.

    When the chosen codec group copies the video stream, scaling arguments are
    left out because a filter cannot be applied to a copied stream.
    """

    def __init__(
        self,
        extension_table: Mapping[str, Sequence[str]] = EXTENSION_CODEC_ARGS,
        resolution_table: Mapping[str, Sequence[str]] = RESOLUTION_SCALING_ARGS,
        default_codec_args: Sequence[str] = DEFAULT_CODEC_ARGS,
        thread_count: int = DEFAULT_THREAD_COUNT,
    ):
        self.extension_table = {}
        for ext, args in extension_table.items():
            if not isinstance(ext, str) or not ext.startswith(".") or ext != ext.lower():
                raise ConfigurationException(
                    f"Extension key '{ext}' must be lowercase and start with '.'"
                )
            self.extension_table[ext] = _validate_args(f"extension {ext}", args)

        self.resolution_table = {}
        for resolution, args in resolution_table.items():
            if not isinstance(resolution, str) or not RESOLUTION_KEY.match(resolution):
                raise ConfigurationException(
                    f"Resolution key '{resolution}' must look like '1920x1080'"
                )
            self.resolution_table[resolution] = _validate_args(f"resolution {resolution}", args)

        self.default_codec_args = _validate_args("default codec", default_codec_args)
        if thread_count < 0:
            raise ConfigurationException("thread_count must be non-negative")
        self.always_on = always_on_args(thread_count)

    @classmethod
    def from_settings(cls, settings) -> "EncodingProfileSelector":
        return cls(
            extension_table=settings.extension_profiles,
            resolution_table=settings.resolution_scaling,
            default_codec_args=settings.default_codec_args,
            thread_count=settings.thread_count,
        )

    def codec_args_for(self, extension: str) -> Tuple[Tuple[str, ...], bool]:
        """Returns the codec group for `extension` and whether the default was used."""
        ext = (extension or "").lower()
        if ext and not ext.startswith("."):
            ext = f".{ext}"
        if ext in self.extension_table:
            return self.extension_table[ext], False
        return self.default_codec_args, True

    def scaling_args_for(self, resolution: Optional[str]) -> Tuple[str, ...]:
        if not resolution:
            return ()
        return self.resolution_table.get(resolution.strip(), ())

    def select(self, extension: str, resolution: Optional[str]) -> EncodingProfile:
        codec_args, is_default = self.codec_args_for(extension)
        scaling_args = () if copies_video(codec_args) else self.scaling_args_for(resolution)

        if is_default:
            logger.debug(f"No profile for extension '{extension}', using the stream-copy default.")
        if resolution and not scaling_args:
            logger.debug(f"No scaling for resolution '{resolution}' ({extension}); passing through.")

        return EncodingProfile(
            extension=(extension or "").lower(),
            resolution=resolution,
            always_on=self.always_on,
            codec_args=codec_args,
            scaling_args=scaling_args,
            is_default=is_default,
        )
