from pydantic import BaseModel, Field
from typing import Optional, List, Literal, Union


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AuthResult(Token):
    email: str
    uid: str
    redirect: str


class Credentials(BaseModel):
    email: str = ""
    password: str = ""


class GoogleSignIn(BaseModel):
    token: str


class CurrentUser(BaseModel):
    uid: str
    email: str
    is_admin: bool = False


class School(BaseModel):
    id: str
    name: str
    location: str = ""
    manage_url: str


class CourseRecord(BaseModel):
    name: str = ""
    section: str = ""
    syllabus_uri: str = ""
    notes: str = ""
    editors: List[str] = []
    updatedAt: Optional[str] = None


def course_fields(data: dict) -> dict:
    """Stored class document -> CourseRecord kwargs.

    Hand-edited documents may hold numbers or booleans (e.g. section 170);
    those are kept as text. Unknown keys and malformed values are dropped.
    """
    out = {}
    for key, value in data.items():
        if key not in CourseRecord.model_fields or value is None:
            continue
        if key == "editors":
            if isinstance(value, list):
                out[key] = [str(v) for v in value if v is not None]
        elif key == "updatedAt" and hasattr(value, "isoformat"):
            out[key] = value.isoformat()
        elif isinstance(value, (str, int, float, bool)):
            out[key] = str(value)
    return out


class ClassItem(CourseRecord):
    id: str
    chat_url: str


class ClassIn(BaseModel):
    name: str = ""
    section: str = ""
    syllabus_uri: str = ""
    notes: str = ""
    editors: Union[str, List[str]] = ""


class ManagementPage(BaseModel):
    user: CurrentUser
    schools: List[School]
    selected_school_id: Optional[str] = None


class TextPart(BaseModel):
    text: str


class ChatTurn(BaseModel):
    role: Literal["user", "model"]
    parts: List[TextPart]

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts)


class ChatPage(BaseModel):
    school_id: str
    course_id: str
    courseTitle: str
    title: str
    placeholder: str
    suggestions: List[str]


class ChatSessionIn(BaseModel):
    schoolID: str
    courseID: str


class RenderedTurn(BaseModel):
    role: Literal["user", "model"]
    html: str
    text: str


class ChatSessionOut(BaseModel):
    session_id: str
    page: ChatPage
    messages: List[RenderedTurn]


class MessageIn(BaseModel):
    text: str = Field(..., min_length=1)


class MessageOut(BaseModel):
    html: str
    text: str
