from syllabot.db.firestore import get_db

SCHOOLS = "schools"
CLASSES = "classes"


def _classes(school_id: str):
    return get_db().collection(SCHOOLS).document(school_id).collection(CLASSES)


def list_schools() -> list[dict]:
    return [{"id": doc.id, **(doc.to_dict() or {})} for doc in get_db().collection(SCHOOLS).stream()]


def get_class(school_id: str, class_id: str) -> dict | None:
    doc = _classes(school_id).document(class_id).get()
    return doc.to_dict() if doc.exists else None


def list_classes(school_id: str, editor_email: str | None = None) -> list[dict]:
    q = _classes(school_id)
    if editor_email is not None:
        q = q.where("editors", "array_contains", editor_email)
    return [{"id": doc.id, **(doc.to_dict() or {})} for doc in q.stream()]


def create_class(school_id: str, data: dict) -> str:
    _, ref = _classes(school_id).add(data)
    return ref.id


def update_class(school_id: str, class_id: str, data: dict) -> None:
    _classes(school_id).document(class_id).set(data, merge=True)


def delete_class(school_id: str, class_id: str) -> None:
    _classes(school_id).document(class_id).delete()
