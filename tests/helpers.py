"""Request builders and store doubles shared by the test modules."""

import asyncio
from types import SimpleNamespace


def order_payload(restaurant_id: str = "r1", table_number: int = 1, **overrides) -> dict:
    payload = {
        "restaurantId": restaurant_id,
        "tableNumber": table_number,
        "items": [{"menuItemId": "m1", "quantity": 2, "name": "Paneer Tikka", "price": 100}],
        "customer": {"name": "Asha Rao", "email": "Asha@Example.com", "phone": "+91 90000 00000"},
    }
    payload.update(overrides)
    return payload


class FlakySession:
    """Stands in for ``AsyncSession``; the calls named in ``on`` stall or fail."""

    def __init__(self, delay: float = 0.0, error: Exception = None, on=("execute",)):
        self.delay = delay
        self.error = error
        self.on = on
        self.added = []
        self.committed = False

    async def _call(self, name):
        if name not in self.on:
            return
        if self.error is not None:
            raise self.error
        await asyncio.sleep(self.delay)

    async def execute(self, stmt):
        await self._call("execute")
        return SimpleNamespace(
            scalar_one_or_none=lambda: None,
            scalars=lambda: SimpleNamespace(all=lambda: []),
        )

    def add(self, obj):
        self.added.append(obj)

    async def commit(self):
        await self._call("commit")
        self.committed = True

    async def refresh(self, obj):
        pass

    async def rollback(self):
        pass

    async def close(self):
        pass
