import random

from reserves import Reserve


class ScriptedRandom(random.Random):
    """Returns queued values from random() before falling back to a seeded stream."""

    def __init__(self, draws=(), seed=0):
        super().__init__(seed)
        self.draws = list(draws)

    def random(self):
        if self.draws:
            return self.draws.pop(0)
        return super().random()


def make_reserve(**overrides):
    fields = dict(
        id=99,
        name="Testpur",
        region="Nowhere",
        total_area=2585,
        core_area=800,
        buffer_area=300,
        tiger_density=38,
        notes="",
    )
    fields.update(overrides)
    return Reserve(**fields)
