"""
Video Shrinker: finds oversized video files in a directory tree and shrinks
them in place with ffmpeg, replacing an original only after a verified,
successful re-encode.
"""
