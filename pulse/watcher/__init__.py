"""This module provides stat based file watching for pulse.

Changes are found by polling: every interval the watch directory is walked
and the mtime of each file with a watched extension is compared against the
mtime recorded on the previous walk.  Polling trades some responsiveness
for behaving the same way on every platform without any native filesystem
event support.

``StatFileObserver`` does a single walk and reports what changed.
``StatFileWatcher`` runs an observer on a background thread and calls a
handler once for every interval in which anything changed, however many
files that was.
"""
