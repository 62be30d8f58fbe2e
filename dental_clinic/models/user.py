import enum

from sqlmodel import Field, SQLModel


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    DENTIST = "DENTIST"
    RECEPTIONIST = "RECEPTIONIST"
    ASSISTANT = "ASSISTANT"


class UserBase(SQLModel):
    email: str = Field(unique=True, index=True)
    first_name: str
    last_name: str
    role: UserRole = Field(default=UserRole.RECEPTIONIST, index=True)
    is_active: bool = True


class User(UserBase, table=True):
    __tablename__ = "users"
    id: int | None = Field(default=None, primary_key=True)
    hashed_password: str


class UserPublic(SQLModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole
    is_active: bool
