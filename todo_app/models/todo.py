from sqlalchemy import Boolean, Column, Integer, Text, false
from todo_app.database import Base

class Todo(Base):
    __tablename__ = "todos"
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    completed = Column(Boolean, nullable=False, default=False, server_default=false())

    def __repr__(self):
        return f"Todo(id={self.id!r}, title={self.title!r}, completed={self.completed!r})"
