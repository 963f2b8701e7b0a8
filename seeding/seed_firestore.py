from datetime import datetime, timezone
import sys

from syllabot.db.firestore import get_db


def seed_schools(editor_email: str):
    db = get_db()
    now = datetime.now(timezone.utc).isoformat()
    seed_data = {
        "schools/demo-high": {
            "name": "Demo High School",
            "location": "Springfield, IL",
        },
        "schools/demo-high/classes/math108": {
            "name": "MATH 108",
            "section": "170",
            "syllabus_uri": "MATH108170.pdf",
            "notes": "Upload the PDF to the storage bucket root before chatting.",
            "editors": [editor_email.strip().lower()],
            "updatedAt": now,
        },
    }

    # Upload to Firestore
    for path, data in seed_data.items():
        db.document(path).set(data)

    print("Seed data uploaded successfully!")


if __name__ == "__main__":
    seed_schools(sys.argv[1] if len(sys.argv) > 1 else "teacher@example.com")
