"""
Configuration Package for the Video Shrinker.

This package centralizes the static configuration of the application and the
immutable settings object built from it once per run.

This package includes:
- Common settings like the logging format, file names and job state names.
- The video profile tables: codec arguments per container extension and
  scaling arguments per source resolution.
- `ShrinkSettings`, loaded from the defaults, an optional YAML file and the
  command-line overrides.
"""
