from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
import logging

import config
from models import (
    AIResult,
    CategorizeRequest,
    CategorizeResponse,
    Stats,
    Task,
    TaskCreate,
    TaskFilter,
)
from database import init_db
from ai_gateway import build_gateway
from store import (
    RequestGenerations,
    TaskStore,
    ValidationError,
    compute_stats,
    filter_tasks,
    make_subtasks,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

store = TaskStore()
gateway = build_gateway()
generations = RequestGenerations()

@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    init_db()
    store.load()
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/tasks")
def get_tasks(task_filter: TaskFilter = Query(TaskFilter.ALL, alias="filter")) -> list[Task]:
    return filter_tasks(store.tasks, task_filter)


@app.post("/tasks")
async def create_task(task_data: TaskCreate) -> list[Task]:
    try:
        return store.add(task_data.text, task_data.category)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.patch("/tasks/{task_id}/toggle")
async def toggle_task(task_id: str) -> list[Task]:
    return store.toggle(task_id)


@app.delete("/tasks/{task_id}")
async def delete_task(task_id: str) -> list[Task]:
    return store.delete(task_id)


@app.patch("/tasks/{task_id}/subtasks/{subtask_id}/toggle")
async def toggle_subtask(task_id: str, subtask_id: str) -> list[Task]:
    return store.toggle_subtask(task_id, subtask_id)


@app.get("/stats")
def get_stats() -> Stats:
    return compute_stats(store.tasks)


@app.post("/categorize")
async def categorize(request: CategorizeRequest) -> CategorizeResponse:
    """Suggest a category for the add form. Does not touch the collection."""
    if not request.text.strip():
        raise HTTPException(status_code=400, detail="Task text must not be empty")
    category = await gateway.categorize(request.text)
    return CategorizeResponse(category=category)


@app.post("/tasks/{task_id}/breakdown")
async def breakdown_task(task_id: str) -> AIResult:
    """Generate subtasks once per task. Existing subtasks are never regenerated."""
    task = store.get(task_id)
    if task is None or task.subtasks:
        return AIResult(tasks=store.tasks)
    if task.completed:
        return AIResult(tasks=store.tasks, error="Completed tasks cannot be broken down.")

    generation = generations.begin("breakdown", task_id)
    try:
        suggestions = await gateway.suggest_subtasks(task.text)

        if not generations.is_current("breakdown", task_id, generation):
            logger.info("Discarding stale breakdown for task %s", task_id)
            return AIResult(tasks=store.tasks)

        # The task may have been deleted or broken down while we were waiting
        task = store.get(task_id)
        if task is None or task.subtasks:
            return AIResult(tasks=store.tasks)

        subtasks = make_subtasks(suggestions)
        if not subtasks:
            return AIResult(tasks=store.tasks, error="Could not generate subtasks.")
        return AIResult(tasks=store.set_subtasks(task_id, subtasks))
    finally:
        generations.finish("breakdown", task_id, generation)


@app.post("/prioritize")
async def prioritize() -> AIResult:
    """Smart sort: reorder active tasks by AI-suggested priority."""
    active = [t for t in store.tasks if not t.completed]
    if len(store.tasks) < 2 or not active:
        return AIResult(tasks=store.tasks)

    generation = generations.begin("prioritize")
    try:
        prioritized_ids = await gateway.prioritize(active)

        if not generations.is_current("prioritize", "", generation):
            logger.info("Discarding stale priority order")
            return AIResult(tasks=store.tasks)

        return AIResult(tasks=store.reorder(prioritized_ids))
    finally:
        generations.finish("prioritize", "", generation)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
