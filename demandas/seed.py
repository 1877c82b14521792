import logging

from .config import get_settings
from .db import make_engine
from .logging_setup import setup_logging
from .migrations import run_migrations
from .store import TaskStore

logger = logging.getLogger(__name__)

SAMPLE_TASKS = [
    {
        "employeeId": 1,
        "employeeName": "Ana Souza",
        "employeeEmail": "ana@example.com",
        "category": "Manutenção",
        "priority": "alta",
        "complexity": "media",
        "description": "Trocar lâmpadas do corredor",
        "location": "Bloco A",
        "dueDate": "2025-12-01",
    },
    {
        "employeeId": 2,
        "employeeName": "Bruno Lima",
        "category": "Limpeza",
        "priority": "baixa",
        "description": "Limpeza da copa",
        "isRecurring": True,
        "weekDays": ["seg", "qua", "sex"],
        "assignees": [{"id": 2, "nome": "Bruno Lima"}, {"id": 3, "nome": "Carla Dias"}],
    },
]


def seed(store):
    """Insert the sample tasks when the table is empty. Returns rows inserted."""
    if store.count() != 0:
        return 0
    for data in SAMPLE_TASKS:
        store.create(dict(data))
    return len(SAMPLE_TASKS)


def main():
    settings = get_settings()
    setup_logging(settings.log_level)
    engine = make_engine(settings.db_path)
    run_migrations(engine)
    store = TaskStore(engine)
    try:
        n = seed(store)
        logger.info("Seeded %s tasks into %s", n, settings.db_path)
    finally:
        store.close()


if __name__ == "__main__":
    main()
