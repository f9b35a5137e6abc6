"""
Configuration settings related to video processing.

This module defines the declarative profile tables used by the
`EncodingProfileSelector`: the always-on transcoder arguments, the codec
arguments per container extension (with a safe default), and the scaling
arguments per exact source resolution. It also lists the container extensions
of tuner recordings that go through commercial stripping first.
"""

# --- Output Container ---
OUTPUT_EXTENSION = ".mp4"
OUTPUT_CONTAINER = "mp4"

# --- Global Transcoder Options ---
# Placed before the input so the transcoder never stops to ask before overwriting.
GLOBAL_ARGS = ("-y", "-hide_banner", "-nostdin")

# --- Always-On Arguments ---
AUDIO_SAMPLE_RATE = 48000
AUDIO_CHANNELS = 2
DEFAULT_THREAD_COUNT = 0  # 0 lets the transcoder choose


def always_on_args(thread_count: int = DEFAULT_THREAD_COUNT) -> tuple:
    """Container, audio rate/channels and thread count, in transcoder order."""
    return (
        "-f", OUTPUT_CONTAINER,
        "-ar", str(AUDIO_SAMPLE_RATE),
        "-ac", str(AUDIO_CHANNELS),
        "-threads", str(thread_count),
    )


# --- Extension -> Codec Arguments ---
# Keys are lowercase extensions including the leading dot.
EXTENSION_CODEC_ARGS = {
    ".ts": ("-c:v", "libx264", "-preset", "medium", "-crf", "23", "-c:a", "aac", "-b:a", "160k"),
    ".m2ts": ("-c:v", "libx264", "-preset", "medium", "-crf", "23", "-c:a", "aac", "-b:a", "160k"),
    ".mts": ("-c:v", "libx264", "-preset", "medium", "-crf", "23", "-c:a", "aac", "-b:a", "160k"),
    ".wtv": ("-c:v", "libx264", "-preset", "medium", "-crf", "23", "-c:a", "aac", "-b:a", "160k"),
    ".mpg": ("-c:v", "libx264", "-preset", "medium", "-crf", "22", "-c:a", "aac", "-b:a", "160k"),
    ".vob": ("-c:v", "libx264", "-preset", "medium", "-crf", "22", "-c:a", "aac", "-b:a", "160k"),
    ".avi": ("-c:v", "libx264", "-preset", "medium", "-crf", "22", "-c:a", "aac", "-b:a", "128k"),
    ".wmv": ("-c:v", "libx264", "-preset", "medium", "-crf", "22", "-c:a", "aac", "-b:a", "128k"),
    ".mov": ("-c:v", "libx264", "-preset", "slow", "-crf", "22", "-c:a", "aac", "-b:a", "160k"),
    ".mp4": ("-c:v", "libx265", "-preset", "medium", "-crf", "26", "-c:a", "aac", "-b:a", "160k"),
    ".m4v": ("-c:v", "libx265", "-preset", "medium", "-crf", "26", "-c:a", "aac", "-b:a", "160k"),
    ".mkv": ("-c:v", "libx265", "-preset", "medium", "-crf", "26", "-c:a", "aac", "-b:a", "192k"),
}

# Used for any extension not in the table: copy the video stream untouched and
# re-encode audio at a conservative quality.
DEFAULT_CODEC_ARGS = ("-c:v", "copy", "-c:a", "aac", "-q:a", "2")

# --- Resolution -> Scaling Arguments ---
# Keys are exact "WIDTHxHEIGHT" strings as reported by the prober.
RESOLUTION_SCALING_ARGS = {
    "3840x2160": ("-vf", "scale=1920:1080"),
    "4096x2160": ("-vf", "scale=2048:1080"),
    "2560x1440": ("-vf", "scale=1920:1080"),
    "1920x1080": ("-vf", "scale=1280:720"),
    "1440x1080": ("-vf", "scale=960:720"),
    "1920x1088": ("-vf", "scale=1280:720"),
}

# --- Commercial Stripping ---
# Tuner-recorded containers that get the commercial remover run on them first.
COMMERCIAL_STRIP_EXTENSIONS = (".ts",)

# --- Two-Pass Settings ---
FIRST_PASS_PRESET = "fast"
FIRST_PASS_AUDIO_CHANNELS = 1

# The second pass targets an average video bitrate derived from the size threshold;
# quality-based rate control flags are removed from the codec group for it.
RATE_CONTROL_FLAGS = ("-crf", "-qp", "-q:v", "-cq")
TWO_PASS_SIZE_MARGIN = 0.98
TWO_PASS_MIN_VIDEO_KBPS = 64
FALLBACK_AUDIO_KBPS = 128
