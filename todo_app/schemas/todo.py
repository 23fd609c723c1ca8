from pydantic import BaseModel, ConfigDict

class TodoBase(BaseModel):
    title: str

class TodoCreate(TodoBase):
    completed: bool = False

class TodoOut(TodoBase):
    id: int
    completed: bool
    model_config = ConfigDict(from_attributes=True)
