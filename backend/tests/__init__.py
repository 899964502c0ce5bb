import os
import tempfile

# Настройки до импорта приложения: отдельная SQLite база, без Redis и каталога
_db_dir = tempfile.mkdtemp(prefix="bottlepost-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["REDIS_URL"] = ""
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SPOTIFY_CLIENT_ID"] = ""
os.environ["SPOTIFY_CLIENT_SECRET"] = ""
os.environ["CORS_ORIGINS"] = "*"
