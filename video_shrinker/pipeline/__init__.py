"""
This package contains the shrink pipeline.

The pipeline scans the directory tree once, creates a transcode job per
candidate, drives the jobs sequentially or on a bounded pool, and reports the
before/after statistics and the ledger of completed jobs.
"""
