"""
Services Package for the Video Shrinker Application.

- **SizeClassifier:** discovers and ranks the files above the size threshold.
- **EncodingProfileSelector:** maps extension and resolution to transcoder arguments.
- **ProcessRunner / MediaProber:** run external tools and probe media files.
- **ProgressMonitor:** derives live progress from the transcoder log.
- **FileTransfer:** moves encoded files next to the originals.
- **TranscodeJob:** the per-file state machine.
- **ResultLedger, SuccessLog, ErrorLog:** the durable record of a run.
"""
