import os
import tempfile

# Muss vor dem Import von app.py gesetzt sein, da die DB beim Import gebunden wird.
# So landet die Test-Datenbank nie in ./data
os.environ.setdefault('TIMETRACKER_DATA_DIR', tempfile.mkdtemp(prefix='timetracker-tests-'))
