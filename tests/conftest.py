import numpy as np
import pytest


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(20240611)


@pytest.fixture
def square():
    def f(x):
        x = np.asarray(x, dtype=float)
        return x * x

    return f
