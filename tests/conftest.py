"""Point the data directory (logs, theme preference) at a throwaway folder.

Runs before any test module is imported, so the logger created at import
time never writes into the real home directory.
"""

import os
import tempfile

os.environ["CHART_EDITOR_DIR"] = tempfile.mkdtemp(prefix="chart-editor-tests-")

import config  # noqa: E402

config._reset_data_dir()
