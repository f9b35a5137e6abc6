"""
This package contains the core domain models of the Video Shrinker application.

Modules:
    exceptions.py: The failure taxonomy of a transcode job.
    media.py: `MediaFile`, the immutable description of a discovered
              candidate, and `DirectoryStats` for before/after reporting.
    job_models.py: Job states and outcomes, process results, encoding
                   profiles and ledger entries.
"""
