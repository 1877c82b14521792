# models.py
from sqlalchemy import Column, Integer, Text
from .db import Base
from .codec import decode_list


class Task(Base):
    __tablename__ = "demandas"

    # column names match the legacy demandas.db files
    id               = Column(Integer, primary_key=True, autoincrement=True)
    employee_id      = Column("funcionarioId", Integer)
    employee_name    = Column("nomeFuncionario", Text)
    employee_email   = Column("emailFuncionario", Text)
    category         = Column("categoria", Text)
    priority         = Column("prioridade", Text)
    complexity       = Column("complexidade", Text)
    description      = Column("descricao", Text)
    location         = Column("local", Text)
    created_at       = Column("dataCriacao", Text)   # ISO-8601 string
    due_date         = Column("dataLimite", Text)
    status           = Column("status", Text)
    is_recurring     = Column("isRotina", Integer)   # 0/1
    week_days        = Column("diasSemana", Text)    # JSON array or NULL
    tag              = Column("tag", Text)
    comments         = Column("comentarios", Text)
    manager_comment  = Column("comentarioGestor", Text)
    completed_at     = Column("dataConclusao", Text)
    assignees        = Column("atribuidos", Text)    # JSON array or NULL

    __table_args__ = {"sqlite_autoincrement": True}

    def to_dict(self):
        return {
            "id": self.id,
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "employeeEmail": self.employee_email,
            "category": self.category,
            "priority": self.priority,
            "complexity": self.complexity,
            "description": self.description,
            "location": self.location,
            "createdAt": self.created_at,
            "dueDate": self.due_date,
            "status": self.status,
            "isRecurring": bool(self.is_recurring),
            "weekDays": decode_list(self.week_days, field_name="diasSemana").value,
            "tag": self.tag,
            "comments": self.comments,
            "managerComment": self.manager_comment,
            "completedAt": self.completed_at,
            "assignees": decode_list(self.assignees, field_name="atribuidos").value,
        }

    def __repr__(self):
        return f"<Task id={self.id} status={self.status}>"


# API key -> ORM attribute, for the string columns copied straight from a payload
TEXT_FIELDS = {
    "employeeName": "employee_name",
    "employeeEmail": "employee_email",
    "category": "category",
    "priority": "priority",
    "complexity": "complexity",
    "description": "description",
    "location": "location",
    "dueDate": "due_date",
    "tag": "tag",
}
