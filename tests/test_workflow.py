"""
Unit tests for the shared workflow helpers.

Tests cover:
- Covariate standardisation, linear predictor & link functions
- Prior initialisation & prior draws
- Thinning, Gelman-Rubin & sampler diagnostics tables
- Posterior summaries, credible intervals & predictive checks
- DIC, persistence & plotting helpers
- Save/upload buttons, summary dropdown & autocorrelation widgets
"""
from collections import OrderedDict
from types import SimpleNamespace

import numpy as np
import pandas as pd
import pytest
import torch
import pyro.distributions as dist
import ipywidgets as widgets
from numpy.testing import assert_allclose, assert_array_equal
from pyro.ops.stats import gelman_rubin

from regression_book import workflow
from regression_book.workflow import base


class TestDataPreparation:

    def test_standardize_gives_zero_mean_unit_std(self):
        z = base.standardize([1, 2, 3, 4])
        assert z.dtype == torch.float
        assert z.mean().item() == pytest.approx(0.0, abs=1e-6)
        assert np.std(z.numpy()) == pytest.approx(1.0, abs=1e-6)

    def test_standardize_constant_raises(self):
        with pytest.raises(ValueError, match="constant"):
            base.standardize([5.0, 5.0, 5.0])

    def test_linear_predictor_list_and_matrix_agree(self):
        coefficients = [torch.tensor(1.), torch.tensor(2.), torch.tensor(3.)]
        x1, x2 = torch.tensor([1., 2.]), torch.tensor([0., 1.])
        from_list = base.linear_predictor(coefficients, [x1, x2])
        from_matrix = base.linear_predictor(coefficients, torch.stack([x1, x2], dim=1))
        assert_allclose(from_list.numpy(), [3., 8.])
        assert_allclose(from_matrix.numpy(), [3., 8.])

    def test_linear_predictor_broadcasts_draws_over_rows(self):
        coefficients = [np.array([[0.], [1.]]), np.array([[1.], [2.]])]
        mu = base.linear_predictor(coefficients, [np.array([1., 2., 3.])])
        assert_allclose(mu, [[1., 2., 3.], [3., 5., 7.]])

    def test_linear_predictor_length_mismatch_raises(self):
        with pytest.raises(ValueError, match="coefficients"):
            base.linear_predictor([1., 2.], [np.ones(3), np.ones(3)])

    def test_link_functions(self):
        assert base.link_function("identity", 2.5) == 2.5
        assert base.link_function("sigmoid", torch.tensor(0.)).item() == pytest.approx(0.5)
        assert base.link_function("sigmoid", np.array([0.])) == pytest.approx(0.5)
        assert base.link_function("exp", np.array([0.])) == pytest.approx(1.0)

    def test_unknown_link_raises(self):
        with pytest.raises(ValueError, match="probit"):
            base.link_function("probit", 0.)

    def test_ordered_parameters(self):
        assert base.ordered_parameters(["sigma", "beta10", "beta2", "beta0"]) == ["beta0", "beta2", "beta10", "sigma"]


class TestPriors:

    def test_init_priors_falls_back_to_default(self):
        default, half = dist.Normal(0., 1.), dist.HalfNormal(1.)
        priors = base.init_priors({"default": default, "b": half}, names=["a", "b"])
        assert priors[0] is default
        assert priors[1] is half

    def test_init_priors_without_default_raises(self):
        with pytest.raises(ValueError, match="default"):
            base.init_priors({"a": dist.Normal(0., 1.)}, names=["a", "b"])

    def test_get_prior_samples(self):
        prior_samples = base.get_prior_samples(num_samples=50, a=dist.HalfNormal(1.), b=dist.Uniform(0., 2.))
        assert len(prior_samples["a"]) == 50
        assert min(prior_samples["a"]) >= 0
        assert max(prior_samples["b"]) <= 2

    def test_density_figure_skips_degenerate_parameters(self, capsys):
        samples = {"a": np.random.RandomState(1).normal(size=100), "b": [1., 1., np.inf], "c": [np.nan, 2., 3.]}
        fig = base.density_figure(samples, grid_size=50)
        assert [trace.name for trace in fig.data] == ["a", "c"]
        assert len(fig.data[0].x) == 50
        assert (np.asarray(fig.data[0].y) > 0).all()
        assert "Cannot draw density for 'b'" in capsys.readouterr().out

    def test_plot_prior_distributions_prints_medians(self, capsys):
        prior_samples = base.get_prior_samples(num_samples=100, beta0=dist.Normal(0., 1.), sigma=dist.HalfNormal(1.))
        base.plot_prior_distributions(model_a=prior_samples)
        out = capsys.readouterr().out
        assert "For model 'model_a'" in out
        assert "Prior sigma Q(0.5)" in out


class TestDiagnostics:

    def test_grubin_matches_pyro(self):
        chains = np.random.RandomState(3).normal(size=(4, 500))
        ours = base.compute_grubin({"x": chains})["x"]
        theirs = gelman_rubin(torch.tensor(chains), chain_dim=0, sample_dim=1).item()
        assert ours == pytest.approx(theirs, abs=1e-3)
        assert ours == pytest.approx(1.0, abs=0.02)

    def test_grubin_flags_separated_chains(self):
        rng = np.random.RandomState(4)
        chains = np.stack([rng.normal(-5, 1, 300), rng.normal(5, 1, 300)])
        assert base.compute_grubin({"x": chains})["x"] > 1.5

    def test_grubin_needs_two_chains(self):
        with pytest.raises(ValueError, match="2 chains"):
            base.compute_grubin({"x": np.ones((1, 100))})

    def test_grubin_of_constant_chains_raises(self):
        with pytest.raises(ValueError, match="constant"):
            base.compute_grubin({"x": np.ones((3, 50))})

    def test_gelman_rubin_stats_truncates_to_shortest_chain(self, fake_chains):
        fake_chains["chain_2"] = {param: values[:150] for param, values in fake_chains["chain_2"].items()}
        grubin_dict = base.gelman_rubin_stats(fake_chains)
        expected = base.compute_grubin({"beta0": np.stack([fake_chains[chain]["beta0"][:150] for chain in fake_chains])})
        assert set(grubin_dict) == {"beta0", "sigma"}
        assert grubin_dict["beta0"] == expected["beta0"]

    def test_prune_hmc_samples(self, fake_chains):
        pruned = base.prune_hmc_samples(fake_chains, {"chain_0": {"beta0": 4}})
        assert_array_equal(pruned["chain_0"]["beta0"], fake_chains["chain_0"]["beta0"][::4])
        assert len(pruned["chain_0"]["sigma"]) == 200
        assert len(pruned["chain_1"]["beta0"]) == 200

    def test_thining_dict_from_acf(self):
        rng = np.random.RandomState(5)
        ar = np.zeros(5000)
        for idx in range(1, len(ar)):
            ar[idx] = 0.9 * ar[idx - 1] + rng.normal()
        thining_dict = base.get_thining_dict({"chain_0": {"iid": rng.normal(size=2000), "ar": ar}})
        assert thining_dict["chain_0"]["iid"] == 1
        assert 10 < thining_dict["chain_0"]["ar"] <= 40

    def test_thining_dict_caps_at_max_lag(self):
        rng = np.random.RandomState(5)
        ar = np.zeros(200)
        for idx in range(1, len(ar)):
            ar[idx] = 0.99 * ar[idx - 1] + rng.normal()
        assert base.get_thining_dict({"chain_0": {"ar": ar}}, max_lag=5)["chain_0"]["ar"] == 5

    def test_thining_dict_short_and_constant_chains(self, capsys):
        thining_dict = base.get_thining_dict({"chain_0": {"short": [1., 2.], "flat": np.ones(100)}})
        assert thining_dict["chain_0"] == {"short": 1, "flat": 1}
        assert "No autocorrelation for 'flat' in 'chain_0'" in capsys.readouterr().out

    def test_chain_diagnostics_table(self):
        diagnostics = {"chain_0": {"beta0": OrderedDict([("n_eff", torch.tensor(320.)), ("r_hat", torch.tensor(1.01))]),
                                   "sigma": OrderedDict([("n_eff", torch.tensor(410.)), ("r_hat", torch.tensor(0.999))]),
                                   "divergences": {"chain 0": [3]},
                                   "acceptance rate": {"chain 0": 0.91}}}
        diagnostics_df = base.get_chain_diagnostics(diagnostics)
        assert diagnostics_df.loc[("beta0", "chain_0", "n_eff"), "metric_values"] == pytest.approx(320.)
        assert diagnostics_df.loc[("sigma", "chain_0", "r_hat"), "acceptance rate"] == pytest.approx(0.91)
        assert diagnostics_df.loc[("beta0", "chain_0", "n_eff"), "divergences"] == "[3]"

    @pytest.mark.parametrize("kwargs", [{"num_chains": 0}, {"burnin_percentage": 1.0}, {"thining_percentage": -0.1}])
    def test_get_hmc_n_chains_rejects_bad_configuration(self, kwargs):
        with pytest.raises(ValueError):
            base.get_hmc_n_chains(lambda: None, **kwargs)


class TestSummaries:

    def test_chains_to_fit_df(self, fake_chains):
        fit_df = base.chains_to_fit_df(fake_chains)
        assert fit_df.shape == (600, 3)
        assert sorted(fit_df["chain"].unique()) == ["chain_0", "chain_1", "chain_2"]

    def test_summary_stats_df(self, fake_chains):
        summary_df = base.summary_stats_df(pd.DataFrame(fake_chains), ["mean", "50%"])
        assert summary_df.loc[("mean", "beta0"), "chain_0"] == pytest.approx(np.mean(fake_chains["chain_0"]["beta0"]))
        assert summary_df.loc[("50%", "sigma"), "chain_2"] == pytest.approx(np.median(fake_chains["chain_2"]["sigma"]))

    def test_summary_stats_df_unknown_metric(self, fake_chains):
        with pytest.raises(ValueError, match="unknown metrics"):
            base.summary_stats_df(pd.DataFrame(fake_chains), ["mode"])

    def test_summary_stats_df_2(self, fake_chains):
        summary_df = base.summary_stats_df_2(base.chains_to_fit_df(fake_chains), ["mean", "std"])
        assert list(summary_df.columns) == ["mean", "std"]
        assert len(summary_df) == 6

    def test_credible_intervals(self):
        draws = np.random.RandomState(6).normal(size=8000)
        intervals = base.credible_intervals(pd.DataFrame({"beta0": draws, "chain": "chain_0"}), prob=0.9)
        row = intervals.loc["beta0"]
        assert row["mean"] == pytest.approx(0.0, abs=0.05)
        assert row["lower"] == pytest.approx(-1.645, abs=0.1)
        assert row["upper"] == pytest.approx(1.645, abs=0.1)
        assert row["hpdi_lower"] < 0 < row["hpdi_upper"]

    def test_credible_intervals_bad_prob(self):
        with pytest.raises(ValueError, match="prob"):
            base.credible_intervals(pd.DataFrame({"beta0": [0., 1.]}), prob=1.5)


class TestPredictiveChecks:

    def test_predictive_check_statistic(self):
        simulated = [[0, 0, 1, 1], [1, 1, 1, 1], [0, 0, 0, 0]]
        replicated, observed, p_value = base.predictive_check_statistic(simulated, [0, 1, 1, 1])
        assert_allclose(replicated, [0.5, 1.0, 0.0])
        assert observed == pytest.approx(0.75)
        assert p_value == pytest.approx(1 / 3)

    def test_plot_predictive_check_returns_statistics(self, capsys):
        replicated, observed, p_value = base.plot_predictive_check(np.ones((5, 3)), [0, 0, 1],
                                                                   statistic_name="proportion")
        assert p_value == 1.0
        assert "predictive p-value for proportion" in capsys.readouterr().out


class toy(base):
    @staticmethod
    def log_likelihood(parameters, y):
        return dist.Normal(torch.as_tensor(parameters["mu"], dtype=torch.float), 1.).log_prob(y).sum()


class TestDIC:

    def test_dic_of_point_mass_posterior_is_deviance(self):
        y = torch.tensor([0., 1.])
        dic_dict = toy.DIC({"chain_0": {"mu": np.zeros(10, dtype=np.float32)}}, y)
        assert dic_dict["chain_0"] == pytest.approx(4.676, abs=1e-3)

    def test_compare_dics(self):
        y = torch.tensor([0., 1.])
        dic_per_model = toy.compare_DICs_given_model(y, model_a={"chain_0": {"mu": np.zeros(5)}},
                                                     model_b={"chain_0": {"mu": np.full(5, 0.5)}})
        assert dic_per_model["model_b"]["chain_0"] < dic_per_model["model_a"]["chain_0"]

    def test_base_has_no_likelihood(self):
        with pytest.raises(NotImplementedError):
            base.calculate_deviance_given_param({}, None)


class TestPersistenceAndPlots:

    def test_save_dataframe_creates_directories(self, tmp_path, fake_chains):
        filepath = tmp_path / "data" / "fit.csv"
        fit_df = base.chains_to_fit_df(fake_chains)
        base.save_dataframe(fit_df, str(filepath))
        loaded = base.load_dataframe(str(filepath))
        assert list(loaded.columns) == list(fit_df.columns)
        assert len(loaded) == len(fit_df)

    def test_box_plots_cap_chain_count(self, fake_chains, capsys):
        fit_df = base.chains_to_fit_df(fake_chains)
        base.plot_parameters_for_n_chains(fit_df, chains=list(fake_chains), plotting_cap=(2, 5), plot_interactive=True)
        assert "Cannot plot Number of chains greater than 2" in capsys.readouterr().out

    def test_box_plots_defaults_plot_first_chain(self, fake_chains, capsys):
        base.plot_parameters_for_n_chains(base.chains_to_fit_df(fake_chains))
        assert "Note" not in capsys.readouterr().out

    def test_box_plots_note_unknown_chain(self, fake_chains, capsys):
        base.plot_parameters_for_n_chains(base.chains_to_fit_df(fake_chains), chains=["chain_9"])
        assert "chain_9" in capsys.readouterr().out

    def test_chain_and_density_plots_render(self, fake_chains):
        base.plot_chains(pd.DataFrame(fake_chains))
        base.plot_posterior_densities(fake_chains, chains=["chain_0"])
        base.plot_joint_distribution(base.chains_to_fit_df(fake_chains), ["beta0", "sigma"])
        base.plot_interaction_hexbins(base.chains_to_fit_df(fake_chains), ["beta0", "sigma"])
        base.plot_autocorrelation(pd.DataFrame(fake_chains), "beta0", ["chain_0"], lags=20)


@pytest.fixture
def displayed(monkeypatch):
    """Collects everything the widget helpers display."""
    shown = []
    monkeypatch.setattr(workflow, "display", lambda obj: shown.append(obj))
    monkeypatch.setattr(workflow, "clear_output", lambda *args, **kwargs: None)
    monkeypatch.setattr(workflow.time, "sleep", lambda seconds: None)
    return shown


class TestWidgets:

    def test_load_main_reads_uploaded_csv(self, displayed, capsys):
        load_button = SimpleNamespace(value=({"name": "fit.csv", "content": memoryview(b"a,b\n1,2\n")},),
                                      description="Upload", icon="upload", button_style="info")
        loaded = base.load_main(load_button)
        pd.testing.assert_frame_equal(loaded, pd.DataFrame({"a": [1], "b": [2]}))
        assert "Loaded 'fit.csv'" in capsys.readouterr().out
        assert (load_button.icon, load_button.button_style) == ("upload", "info")

        loaded_again = base.load_parameter_chain_dataframe(load_button)
        assert list(loaded_again.columns) == ["a", "b"]

    def test_load_without_upload_is_empty(self):
        assert base.load_parameter_chain_dataframe(SimpleNamespace(value=())).empty

    def test_save_main_writes_and_resets_button(self, displayed, tmp_path, fake_chains):
        filepath = tmp_path / "fit.csv"
        save_button = base.build_save_button()
        base.save_main(save_button, base.chains_to_fit_df(fake_chains), str(filepath))
        assert len(pd.read_csv(filepath)) == 600
        assert displayed == [save_button]
        assert (save_button.icon, save_button.button_style) == ("save", "info")

    def test_save_button_click_writes_file(self, displayed, tmp_path, fake_chains, monkeypatch):
        filepath = tmp_path / "data" / "fit.csv"
        save_button = base.build_save_button()
        monkeypatch.setattr(base, "build_save_button", lambda: save_button)
        base.save_parameter_chain_dataframe(base.chains_to_fit_df(fake_chains), str(filepath))
        assert not filepath.exists()
        save_button.click()
        assert list(pd.read_csv(filepath).columns) == ["beta0", "sigma", "chain"]

    def test_summary_dropdown_displays_table(self, displayed, fake_chains, capsys):
        param_chain_matrix_df = pd.DataFrame(fake_chains)
        base.summary(param_chain_matrix_df)
        dropdown = displayed[0]
        assert isinstance(dropdown, widgets.Dropdown)
        assert "Select any value" in capsys.readouterr().out

        dropdown.value = "std"
        pd.testing.assert_frame_equal(displayed[-1], base.summary_stats_df(param_chain_matrix_df, ["std"]))

    def test_summary_layout_2_all_metrics(self, displayed, fake_chains):
        base.summary(base.chains_to_fit_df(fake_chains), layout=2)
        displayed[0].value = "ALL"
        assert list(displayed[-1].columns) == ["mean", "std", "25%", "50%", "75%"]

    def test_autocorrelation_plots_follow_selection(self, displayed, fake_chains, monkeypatch):
        calls = []
        monkeypatch.setattr(base, "plot_autocorrelation", lambda df, param, chains: calls.append((param, chains)))
        base.autocorrelation_plots(pd.DataFrame(fake_chains))
        radio_but = displayed[0]
        assert list(radio_but.options) == ["beta0", "sigma"]

        radio_but.value = "sigma"
        select_multiple = [obj for obj in displayed if isinstance(obj, widgets.SelectMultiple)][-1]
        select_multiple.value = ("chain_0", "chain_2")
        assert calls == [("sigma", ["chain_0", "chain_2"])]
