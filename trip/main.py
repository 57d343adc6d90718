import asyncio

from trip.context import SessionContext
from trip.utilities.config import POLL_INTERVAL, collection_path, configure_logging
from trip.utilities.constants import WEEKDAY_HEADERS


async def show_current_month():
    async with SessionContext.from_config() as ctx:
        if not await ctx.wait_ready(timeout=POLL_INTERVAL * 5):
            print(f"No snapshot from {collection_path()} yet: {ctx.controller.state.error or 'timed out'}")
            return
        c = ctx.controller
        print(f"Signed in as {c.user_id}")
        if c.state.error:
            print(c.state.error)
        print(c.state.current_month.strftime("%B %Y"))
        print(" ".join(f"{h:>3}" for h in WEEKDAY_HEADERS))
        row = []
        for cell in c.month_grid():
            row.append("   " if cell is None else f"{cell.day.day:>2}{'*' if cell.has_plan else ' '}")
            if len(row) == 7:
                print(" ".join(row))
                row = []
        if row:
            print(" ".join(row))
        for cell in c.month_grid():
            if cell is not None and cell.has_plan:
                print(f"{cell.date_key}  {cell.label}")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(show_current_month())
