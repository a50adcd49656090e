import logging

from celery import current_task


class CeleryTaskIDFilter(logging.Filter):
    """Adds ``task_id`` to every record so the ``long`` formatter can show it."""

    def filter(self, record):
        task = current_task
        if task and task.request.id:
            record.task_id = f" [{task.request.id}]"
        else:
            record.task_id = ""
        return True
