import asyncio
import random

from taskatron import LogType, Scheduler, Task, TaskResult
from taskatron.api import run_api
from taskatron.config import Settings, create_scheduler
from taskatron.logging_setup import setup_logging


class FetchPrices(Task):
    async def execute(self, scheduler: Scheduler) -> TaskResult:
        await asyncio.sleep(0.5)
        prices = [round(random.uniform(90, 110), 2) for _ in range(5)]
        scheduler.add_task_log(self.id, LogType.INFO, f"Fetched {len(prices)} prices")
        scheduler.set_value("prices", prices)
        return TaskResult(message="fetched", count=len(prices))


class Summarize(Task):
    async def execute(self, scheduler: Scheduler) -> TaskResult:
        prices = scheduler.get_value("prices") or []
        average = sum(prices) / len(prices) if prices else 0.0
        scheduler.add_task_log(self.id, LogType.INFO, f"Average price: {average:.2f}")
        return TaskResult(message="summarized", average=average)


async def main():
    settings = Settings()
    setup_logging(settings.log_level)
    scheduler = create_scheduler(settings)

    fetch = FetchPrices()
    summarize = Summarize()
    fetch.set_triggers([summarize])
    scheduler.register_task([fetch, summarize])

    # every 10 seconds
    scheduler.schedule_task(fetch, "*/10 * * * * *")
    runner = await run_api(scheduler, settings.api_host, settings.api_port)

    try:
        await asyncio.sleep(35)
    finally:
        await scheduler.shutdown()
        await runner.cleanup()
        scheduler.print_all_tasks()


if __name__ == "__main__":
    asyncio.run(main())
