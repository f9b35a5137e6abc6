"""
Test encoding profile selection and table validation
"""

import pytest

from video_shrinker.config.video import DEFAULT_CODEC_ARGS, EXTENSION_CODEC_ARGS
from video_shrinker.domain.exceptions import ConfigurationException
from video_shrinker.services.profile_selector import EncodingProfileSelector, copies_video


@pytest.fixture
def selector():
    return EncodingProfileSelector(thread_count=4)


class TestSelection:
    """Lookup of codec and scaling groups"""

    def test_known_extension_and_resolution(self, selector):
        profile = selector.select(".ts", "1920x1080")

        assert profile.codec_args == EXTENSION_CODEC_ARGS[".ts"]
        assert profile.scaling_args == ("-vf", "scale=1280:720")
        assert not profile.is_default

    def test_extension_lookup_is_case_insensitive(self, selector):
        assert selector.select(".MKV", None).codec_args == EXTENSION_CODEC_ARGS[".mkv"]
        assert selector.select("mkv", None).codec_args == EXTENSION_CODEC_ARGS[".mkv"]

    def test_unknown_extension_falls_back_to_default(self, selector):
        profile = selector.select(".foo", "1920x1080")

        assert profile.is_default
        assert profile.codec_args == DEFAULT_CODEC_ARGS
        # The default copies the video stream, so no scaling filter applies.
        assert profile.scaling_args == ()

    @pytest.mark.parametrize("resolution", [None, "", "1234x567", "garbage"])
    def test_unmatched_resolution_passes_through(self, selector, resolution):
        assert selector.select(".mkv", resolution).scaling_args == ()

    def test_always_on_arguments(self, selector):
        profile = selector.select(".mkv", None)

        assert profile.always_on == ("-f", "mp4", "-ar", "48000", "-ac", "2", "-threads", "4")

    def test_transcode_arguments_order(self, selector):
        profile = selector.select(".ts", "3840x2160")

        args = profile.transcode_arguments("in.ts", "out.mp4")

        assert args[:2] == ["-i", "in.ts"]
        assert args[-1] == "out.mp4"
        body = args[2:-1]
        assert body == [*profile.always_on, *profile.scaling_args, *profile.codec_args]

    def test_custom_tables(self):
        selector = EncodingProfileSelector(
            extension_table={".ts": ["-c:v", "libx265"]},
            resolution_table={"720x480": ["-vf", "scale=640:480"]},
        )

        profile = selector.select(".ts", "720x480")

        assert profile.codec_args == ("-c:v", "libx265")
        assert profile.scaling_args == ("-vf", "scale=640:480")
        assert selector.select(".mkv", None).is_default


class TestValidation:
    """Tables are validated when the selector is built"""

    @pytest.mark.parametrize("table", [
        {"ts": ["-c:v", "copy"]},
        {".TS": ["-c:v", "copy"]},
        {".ts": []},
        {".ts": "-c:v copy"},
        {".ts": ["-c:v", ""]},
        {".ts": ["-crf", 23]},
    ])
    def test_invalid_extension_table(self, table):
        with pytest.raises(ConfigurationException):
            EncodingProfileSelector(extension_table=table)

    @pytest.mark.parametrize("table", [
        {"1920*1080": ["-vf", "scale=1280:720"]},
        {"1080p": ["-vf", "scale=1280:720"]},
        {"1920x1080": []},
    ])
    def test_invalid_resolution_table(self, table):
        with pytest.raises(ConfigurationException):
            EncodingProfileSelector(resolution_table=table)

    def test_invalid_default_and_threads(self):
        with pytest.raises(ConfigurationException):
            EncodingProfileSelector(default_codec_args=())
        with pytest.raises(ConfigurationException):
            EncodingProfileSelector(thread_count=-1)


@pytest.mark.parametrize("args,expected", [
    (("-c:v", "copy"), True),
    (("-vcodec", "copy", "-c:a", "aac"), True),
    (("-c", "copy"), True),
    (("-c:v", "libx264", "-c:a", "copy"), False),
    ((), False),
])
def test_copies_video(args, expected):
    assert copies_video(args) is expected
