import pytest

from rules.core import Dice


class ScriptedRandom:
    def __init__(self, values):
        self.values = list(values)

    def randint(self, low, high):
        if not self.values:
            raise AssertionError("No scripted rolls left")
        value = self.values.pop(0)
        assert low <= value <= high
        return value

    def random(self):
        return 0.5


@pytest.fixture
def scripted_dice():
    def factory(values):
        dice = Dice(seed=0)
        dice.rng = ScriptedRandom(values)
        return dice

    return factory
