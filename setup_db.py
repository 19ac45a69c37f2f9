# setup_db.py
from db import Base, engine
from models.user import User
from models.progress_entry import ProgressEntry
print("🗑️ Dropping tables...")
Base.metadata.drop_all(bind=engine)
print("📦 Creating tables...")
Base.metadata.create_all(bind=engine)
print("✅ Done.")
