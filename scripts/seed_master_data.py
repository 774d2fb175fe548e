# scripts/seed_master_data.py
from pymongo import MongoClient
from datetime import datetime
import os

# --- Configuration ---
MONGO_URI = os.environ.get("DATABASE_URL", "mongodb://localhost:27017/stoir")
# ---------------------

CATEGORY_COLLECTION = 'categories'
AREA_COLLECTION = 'areas'

# Starting master data for a fresh spare-parts shop.
DEFAULT_CATEGORIES = [
    {"category_code": "CAT001", "category_name": "Engine"},
    {"category_code": "CAT002", "category_name": "Brake System"},
    {"category_code": "CAT003", "category_name": "Electrical"},
    {"category_code": "CAT004", "category_name": "Body Parts"},
    {"category_code": "CAT005", "category_name": "Oil & Lubricants"},
]

DEFAULT_AREAS = [
    {"area_code": "AREA001", "area_name": "Local"},
    {"area_code": "AREA002", "area_name": "Out of Town"},
]

def _seed_collection(collection, documents, code_field):
    """Inserts the documents whose code is not stored yet. Returns how many were added."""
    now = datetime.utcnow()
    added = 0
    for document in documents:
        if collection.count_documents({code_field: document[code_field]}) > 0:
            continue
        collection.insert_one({**document, "created_date": now, "updated_date": now, "updated_by": "System"})
        added += 1
    return added

def seed_data(client=None):
    """Connects to the DB and seeds default categories and areas."""
    owns_client = client is None
    try:
        if owns_client:
            print(f"Connecting to MongoDB at {MONGO_URI}...")
            client = MongoClient(MONGO_URI)
        db = client.get_default_database(default="stoir")
        print(f"Connected to database '{db.name}'.")

        categories = _seed_collection(db[CATEGORY_COLLECTION], DEFAULT_CATEGORIES, "category_code")
        areas = _seed_collection(db[AREA_COLLECTION], DEFAULT_AREAS, "area_code")
        print(f"Seeded {categories} categories and {areas} areas.")
        return categories, areas
    finally:
        if owns_client and client is not None:
            client.close()
            print("MongoDB connection closed.")

if __name__ == "__main__":
    print("--- Starting Master Data Seeding Script ---")
    try:
        seed_data()
    except Exception as e:
        print(f"An error occurred during seeding: {e}")
    print("--- Seeding Script Finished ---")
