import functools
import json
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from aiohttp import web

from taskatron.domain.run import RunQuery
from taskatron.errors import TaskNotFoundError
from taskatron.scheduler import Scheduler

logger = logging.getLogger(__name__)

SCHEDULER_KEY = web.AppKey("scheduler", Scheduler)

_pretty_dumps = functools.partial(json.dumps, indent=2)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _json(data, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=_pretty_dumps)


def _not_found() -> web.Response:
    return _json({"message": "Not Found", "ok": False}, status=404)


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    try:
        response = await handler(request)
    except web.HTTPNotFound:
        return _not_found()
    if request.path.startswith("/api/tasks"):
        response.headers["Access-Control-Allow-Origin"] = "*"
    return response


def _run_query(request: web.Request) -> RunQuery:
    raw = request.query.get("startTime")
    if not raw:
        return RunQuery()
    try:
        millis = int(raw)
    except ValueError:
        raise web.HTTPBadRequest(
            text=_pretty_dumps({"message": f"Invalid startTime '{raw}'", "ok": False}),
            content_type="application/json",
        )
    return RunQuery(min_start_time=datetime.fromtimestamp(millis / 1000, tz=timezone.utc))


async def index(request: web.Request) -> web.Response:
    return web.Response(text="Taskatron API")


async def list_tasks(request: web.Request) -> web.Response:
    scheduler = request.app[SCHEDULER_KEY]
    return _json({"tasks": [task.to_dict() for task in scheduler.get_tasks()]})


async def get_task(request: web.Request) -> web.Response:
    scheduler = request.app[SCHEDULER_KEY]
    task = scheduler.get_task(request.match_info["id"])
    if task:
        return _json({"task": task.to_dict()})
    return _not_found()


async def get_logs(request: web.Request) -> web.Response:
    scheduler = request.app[SCHEDULER_KEY]
    runs = scheduler.get_all_task_logs(request.match_info["id"], _run_query(request))
    return _json([run.model_dump(mode="json") for run in runs])


async def get_last_log(request: web.Request) -> web.Response:
    scheduler = request.app[SCHEDULER_KEY]
    run = scheduler.get_last_task_log(request.match_info["id"], _run_query(request))
    return _json(run.model_dump(mode="json") if run else None)


async def start_task(request: web.Request) -> web.Response:
    scheduler = request.app[SCHEDULER_KEY]
    task_id = request.match_info["id"]
    try:
        task = scheduler.get_task(task_id)
        if not task:
            raise TaskNotFoundError(task_id)
        scheduler.start_task(task)
        return _json({"message": f'Task "{task_id}" started.'})
    except TaskNotFoundError as e:
        return _json({"message": str(e)}, status=404)
    except Exception as e:
        logger.exception("Failed to start task %s", task_id)
        return _json({"message": f'Failed to start task "{task_id}".', "error": str(e) or "Unknown error"}, status=500)


async def stop_task(request: web.Request) -> web.Response:
    scheduler = request.app[SCHEDULER_KEY]
    task_id = request.match_info["id"]
    try:
        scheduler.stop_task(task_id)
        return _json({"message": f'Task "{task_id}" stopped.'})
    except Exception as e:
        logger.exception("Failed to stop task %s", task_id)
        return _json({"message": f'Failed to stop task "{task_id}".', "error": str(e) or "Unknown error"}, status=500)


def create_app(scheduler: Scheduler) -> web.Application:
    """
    Build the HTTP API around a scheduler. No authentication is applied.
    """
    app = web.Application(middlewares=[error_middleware])
    app[SCHEDULER_KEY] = scheduler
    app.router.add_get("/", index)
    app.router.add_get("/api/tasks", list_tasks)
    app.router.add_get("/api/tasks/{id}", get_task)
    app.router.add_get("/api/tasks/{id}/logs", get_logs)
    app.router.add_get("/api/tasks/{id}/lastlog", get_last_log)
    app.router.add_post("/api/tasks/{id}/start", start_task)
    app.router.add_post("/api/tasks/{id}/stop", stop_task)
    return app


async def run_api(scheduler: Scheduler, host: str = "127.0.0.1", port: int = 8000) -> web.AppRunner:
    """
    Start serving the API on the running loop. Call ``await runner.cleanup()`` to stop.
    """
    runner = web.AppRunner(create_app(scheduler))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("Taskatron API listening on http://%s:%s", host, port)
    return runner
