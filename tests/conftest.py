import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pyro
import pytest
import matplotlib.pyplot as plt
import plotly.graph_objects as go


@pytest.fixture(autouse=True)
def quiet_figures(monkeypatch):
    """Figures are built but never rendered or opened in a browser."""
    monkeypatch.setattr(go.Figure, "show", lambda self, *args, **kwargs: None)
    monkeypatch.setattr(plt, "show", lambda *args, **kwargs: None)
    yield
    plt.close("all")


@pytest.fixture(autouse=True)
def seed():
    pyro.set_rng_seed(1)
    pyro.clear_param_store()


@pytest.fixture
def penguins_df():
    """Penguins-shaped data: males are larger on every measurement, a few values missing."""
    rng = np.random.RandomState(7)
    n = 60
    sex = np.where(np.arange(n) % 2 == 0, "Male", "Female").astype(object)
    male = (sex == "Male").astype(float)
    df = pd.DataFrame({
        "species": np.array(["Adelie", "Chinstrap", "Gentoo"])[np.arange(n) % 3],
        "island": "Biscoe",
        "bill_length_mm": 40 + 3 * male + rng.normal(0, 1.5, n),
        "bill_depth_mm": 17 + 1.5 * male + rng.normal(0, 0.8, n),
        "flipper_length_mm": 195 + 6 * male + rng.normal(0, 5, n),
        "body_mass_g": 3800 + 500 * male + rng.normal(0, 250, n),
        "sex": sex,
    })
    df.loc[3, "sex"] = np.nan
    df.loc[10, "body_mass_g"] = np.nan
    df.loc[11, "bill_length_mm"] = np.nan
    return df


@pytest.fixture
def fake_chains():
    rng = np.random.RandomState(0)
    return {"chain_%s" % idx: {"beta0": rng.normal(1.0, 0.5, 200), "sigma": rng.gamma(2.0, 1.0, 200)}
            for idx in range(3)}
