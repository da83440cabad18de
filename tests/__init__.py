import os
import tempfile

# Configure the app before any signalcast module reads its settings.
_TMP_DIR = tempfile.mkdtemp(prefix="signalcast-tests-")

os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ.setdefault("JWT_SECRET", "test-secret-key")
# Cheap argon2 parameters keep the suite fast
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")
os.environ.setdefault("ARGON2_PARALLELISM", "1")
os.environ["SIGNALCAST_HOME"] = os.path.join(_TMP_DIR, "client")
os.environ.setdefault("SIGNALCAST_URL", "http://testserver")
