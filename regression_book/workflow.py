import os
import re
import time
import itertools
from io import StringIO
from collections import defaultdict

import numpy as np
import pandas as pd
import torch
import seaborn as sns
import matplotlib.pyplot as plt
from scipy import stats
from scipy.special import expit

import pyro.distributions as dist
from pyro.infer import MCMC, NUTS
from pyro.ops.stats import hpdi

import plotly.express as px
import plotly.graph_objects as go
from statsmodels.graphics.tsaplots import plot_acf
from statsmodels.tsa.stattools import acf
import ipywidgets as widgets
from IPython.display import display, clear_output


ALL_METRICS = ["mean", "std", "25%", "50%", "75%"]


class base(object):
    """
    Helpers shared by every chapter of the book. Chapters subclass `base`, set
    `parameter_names`/`default_priors` and supply their own model,
    simulator and `log_likelihood`.
    """
    parameter_names = []
    default_priors = {"default": dist.Normal(0., 316.)}

    def __init__(self):
        pass

    # Data preparation
    @staticmethod
    def standardize(x):
        """
        Input
        -------
        x: 1-D array-like (list, numpy array, pandas series or tensor) of covariate values.

        Output
        --------
        float tensor holding z-scores of x, i.e., (x - mean(x))/std(x).

        """
        x = np.asarray(x, dtype=float)
        if np.std(x) == 0:
            raise ValueError("cannot standardize a constant covariate")
        return torch.tensor(stats.zscore(x), dtype=torch.float)# standardises Input data

    @staticmethod
    def linear_predictor(coefficients, covariates):
        """
        Input
        -------
        coefficients: list of intercept followed by one coefficient per covariate,
                    example: [beta0, beta1, beta2, beta3]
        covariates: list of 1-D tensors/arrays (X1, X2, X3) or a 2-D tensor/array shaped (N, p).

        Output
        --------
        mu = beta0 + beta1 * X1 + ... + betap * Xp
        """
        if getattr(covariates, "ndim", 1) == 2:
            covariates = [covariates[:, idx] for idx in range(covariates.shape[1])]
        if len(coefficients) != len(covariates) + 1:
            raise ValueError("expected %s coefficients (intercept + one per covariate), got %s"
                             % (len(covariates) + 1, len(coefficients)))
        mu = coefficients[0]
        for coefficient, covariate in zip(coefficients[1:], covariates):
            mu = mu + coefficient * covariate
        return mu

    @staticmethod
    def link_function(name, value):
        """Inverse link mapping the linear predictor to the mean of the response."""
        activation_function = {"identity": lambda v: v,
                               "sigmoid": lambda v: torch.sigmoid(v) if torch.is_tensor(v) else expit(v),
                               "exp": lambda v: torch.exp(v) if torch.is_tensor(v) else np.exp(v)}
        if name not in activation_function:
            raise ValueError("unknown link function '%s', use one of %s" % (name, list(activation_function)))
        return activation_function[name](value)

    @staticmethod
    def ordered_parameters(names):
        """Sorts names like ['beta10', 'sigma', 'beta2'] as beta2, beta10, sigma."""
        def sort_key(name):
            prefix, digits = re.match(r"^(.*?)(\d*)$", name).groups()
            return (prefix, int(digits) if digits else -1)
        return sorted(names, key=sort_key)

    # Priors
    @classmethod
    def init_priors(cls, prior_dict=None, names=None):
        """
        Input
        -------
        prior_dict: dictionary of parameter name vs pyro distribution, with key 'default' used
                    for parameters not named explicitly, example: {"default": dist.Normal(0., 316.),
                    "sigma": dist.HalfNormal(10.)}
        names: parameter names, defaults to the chapter's `parameter_names`

        Output
        --------
        list of prior distributions in the order of `names`.
        """
        prior_dict = prior_dict if prior_dict is not None else dict(cls.default_priors)
        names = names if names else prior_dict.get("names", cls.parameter_names)
        missing = [param for param in names if param not in prior_dict]
        if missing and "default" not in prior_dict:
            raise ValueError("pass a default distribution to key 'default' for parameters %s" % missing)
        return [prior_dict.get(param, prior_dict.get("default")) for param in names]

    @staticmethod
    def get_prior_samples(num_samples=1100, **kwargs):
        """
        Input
        -------
        num_samples: count of draws per parameter, default 1100
        kwargs: parameter name vs prior distribution, example: beta0=dist.Normal(0., 316.)

        Output
        --------
        dictionary of parameter name vs list of prior draws.
        """
        prior_samples = {}
        for param, param_prior in kwargs.items():
            prior_samples[param] = param_prior.sample(torch.Size([num_samples])).tolist()
        return prior_samples

    @staticmethod
    def density_figure(samples_dict, grid_size=200):
        """
        Input
        -------
        samples_dict: dictionary of parameter name vs samples
        grid_size: count of points each density curve is evaluated at

        Output
        --------
        plotly figure with one gaussian KDE curve per parameter; non finite draws are left out and
        parameters with fewer than 2 distinct finite draws are skipped with a note.
        """
        fig = go.Figure()
        for param, values in samples_dict.items():
            values = np.asarray(values, dtype=float).ravel()
            values = values[np.isfinite(values)]
            if np.unique(values).size < 2:
                print("Note: Cannot draw density for '%s', fewer than 2 distinct finite samples!" % param)
                continue
            grid = np.linspace(values.min(), values.max(), grid_size)
            fig.add_trace(go.Scatter(x=grid, y=stats.gaussian_kde(values)(grid), mode="lines", name=param))
        return fig

    @staticmethod
    def plot_prior_distributions(**kwargs):
        for model_name, prior_samples in kwargs.items():
            medians = " | ".join("Prior %s Q(0.5) :%s" % (param, np.quantile(values, 0.5))
                                 for param, values in prior_samples.items())
            print("For model '%s' %s" % (model_name, medians))
            fig = base.density_figure(prior_samples)
            fig.update_layout(title="Prior distribution of '%s' parameters" % (model_name), xaxis_title="parameter values",
                              yaxis_title="density", legend_title="parameters")
            fig.show()

    # Sampling
    @staticmethod
    def get_hmc_n_chains(pyromodel, *model_args, num_chains=4, sample_count=1000,
                         burnin_percentage=0.1, thining_percentage=0.9, disable_progbar=False, **model_kwargs):
        """
        Input
        -------
        pyromodel: Pyro model callable, example: StackModel
        model_args: positional data arguments of the model, example: X1, X2, X3, Y
        num_chains: Count of MCMC chains to launch, default 4
        sample_count: count of samples expected in a MCMC chain after burn-in & thinning, default 1000
        burnin_percentage: fraction of each chain run as NUTS warm-up & discarded, default 0.1
        thining_percentage: fraction of draws expected to be pruned later on by thinning, default 0.9
        model_kwargs: keyword arguments of the model, example: beta_prior=dist.Normal(0., 316.)

        Outputs
        ---------
        hmc_sample_chains: a dictionary with chain names as keys & dictionary of parameter vs sampled values list as values
        hmc_chain_diagnostics: a dictionary with chain names as keys & dictionary of chain diagnostic metric values from hmc sampling.

        """
        if num_chains < 1:
            raise ValueError("num_chains must be at least 1, got %s" % num_chains)
        for name, value in (("burnin_percentage", burnin_percentage), ("thining_percentage", thining_percentage)):
            if not 0 <= value < 1:
                raise ValueError("%s must lie in [0, 1), got %s" % (name, value))

        hmc_sample_chains = defaultdict(dict)
        hmc_chain_diagnostics = defaultdict(dict)

        net_sample_count = round(sample_count / ((1 - burnin_percentage) * (1 - thining_percentage)))

        t1 = time.time()
        for idx in range(num_chains):
            num_samples, burnin = net_sample_count, round(net_sample_count * burnin_percentage)
            nuts_kernel = NUTS(pyromodel)
            mcmc = MCMC(nuts_kernel, num_samples=num_samples, warmup_steps=burnin, disable_progbar=disable_progbar)
            mcmc.run(*model_args, **model_kwargs)
            hmc_sample_chains['chain_{}'.format(idx)] = {k: v.detach().cpu().numpy() for k, v in mcmc.get_samples().items()}
            hmc_chain_diagnostics['chain_{}'.format(idx)] = mcmc.diagnostics()

        print("\nTotal time: ", time.time() - t1)
        hmc_sample_chains = dict(hmc_sample_chains)
        hmc_chain_diagnostics = dict(hmc_chain_diagnostics)

        return hmc_sample_chains, hmc_chain_diagnostics

    @staticmethod
    def chains_to_fit_df(hmc_sample_chains):
        """Long dataframe with one column per parameter and a 'chain' column."""
        fit_df = pd.DataFrame()
        for chain, values in hmc_sample_chains.items():
            param_df = pd.DataFrame(values)
            param_df["chain"] = chain
            fit_df = pd.concat([fit_df, param_df], axis=0)
        return fit_df.reset_index(drop=True)

    # Diagnostics
    @staticmethod
    def get_chain_diagnostics(hmc_chain_diagnostics):
        """
        Input
        -------
        hmc_chain_diagnostics: dictionary holding chain diagnostic metric values from hmc sampling
                                (ex: {'chain_0': {'beta0': OrderedDict([('n_eff', tensor(320.6277)),('r_hat', tensor(0.9991))]),
                                'sigma': OrderedDict([('n_eff', tensor(422.8024)), ('r_hat', tensor(0.9991))]),'divergences': {'chain 0': []},
                                'acceptance rate': {'chain 0': 0.986}}}).

        Outputs
        ---------
        pandas dataframe holding hmc chain diagnostic results.

        """
        diagnostics_df = pd.DataFrame()

        for chain, diag_di in hmc_chain_diagnostics.items():
            parameters = sorted(set(diag_di.keys()) - {'acceptance rate', 'divergences'})
            diag_params = list(diag_di.get(parameters[0]).keys())

            diag_func = lambda param: (param, list(map(lambda d_param: float(diag_di[param][d_param]), diag_params)))

            diagnostics_dict = dict(map(diag_func, parameters))
            diagnostics_dict.update({"metric": diag_params, "chain": chain,
                                     "acceptance rate": diag_di.get("acceptance rate", {}).get("chain 0")})

            diagnostics_dict_df = pd.DataFrame(diagnostics_dict)
            diagnostics_dict_df["divergences"] = str(diag_di.get("divergences", {}).get("chain 0", []))
            diagnostics_df = pd.concat([diagnostics_df, diagnostics_dict_df], axis=0)

        diagnostics_df = diagnostics_df.melt(id_vars=["chain", "metric", "acceptance rate", "divergences"],
                                             var_name="parameters", value_name="metric_values")
        diagnostics_df.set_index(["parameters", "chain", "metric"], inplace=True)

        return diagnostics_df

    @staticmethod
    def get_thining_dict(hmc_sample_chains, threshold=0.1, max_lag=40):
        """
        Input
        -------
        hmc_sample_chains: a dictionary with chain names as keys & dictionary of parameter vs sampled values list as values
        threshold: ACF value below which draws are treated as uncorrelated, default 0.1
        max_lag: largest lag inspected; when ACF never drops below threshold the largest lag
                inspected (max_lag, or chain length - 1 for shorter chains) is used as factor

        Output
        --------
        thining_dict with chain names as keys & dictionary of parameter vs thining factor as values,
        example: {"chain_0": {"beta0":3, "sigma":2}, "chain_1": {"beta0":4, "sigma":2}}
        Chains with fewer than 2 draws or constant draws have no ACF & get factor 1.
        """
        thining_dict = defaultdict(dict)
        for chain, params_dict in hmc_sample_chains.items():
            for param, samples in params_dict.items():
                samples = np.asarray(samples, dtype=float).ravel()
                if len(samples) < 2 or np.ptp(samples) == 0:
                    print("Note: No autocorrelation for '%s' in '%s', thining factor set to 1" % (param, chain))
                    thining_dict[chain][param] = 1
                    continue
                nlags = max(1, min(int(max_lag), len(samples) - 1))
                corr_array = acf(samples, nlags=nlags, fft=True)
                below = np.nonzero(np.abs(corr_array[1:]) < threshold)[0]
                thining_dict[chain][param] = int(below[0] + 1) if below.size else nlags
        return dict(thining_dict)

    @staticmethod
    def prune_hmc_samples(hmc_sample_chains, thining_dict):
        """
        Input
        -------
        hmc_sample_chains: a dictionary with chain names as keys & dictionary of parameter vs sampled values list as values
        thining_dict: a dictionary with chain names as keys & dictionary of parameter vs thining factor list as values
                      example:  {"chain_0": {"beta0":6, "sigma":3}, "chain_1": {"beta0":7, "sigma":3}}


        Outputs
        ---------
        Outputs a pruned version of hmc_sample_chains in accordance with respective thining factors,
        parameters without a thining factor are kept as they are.

        """
        pruned_hmc_sample_chains = defaultdict(dict)
        for chain, params_dict in hmc_sample_chains.items():
            chain_thining = thining_dict.get(chain, {})
            pruned_hmc_sample_chains[chain] = dict(map(lambda val: (val[0], val[1][::chain_thining.get(val[0], 1)]),
                                                       list(params_dict.items())))

            original_sample_shape_dict = dict(map(lambda val: (val[0], val[1].shape), list(params_dict.items())))
            pruned_sample_shape_dict = dict(map(lambda val: (val[0], val[1].shape), list(pruned_hmc_sample_chains[chain].items())))

            print("%s\nOriginal sample counts for '%s' parameters: %s" % ("-" * 25, chain, original_sample_shape_dict))
            print("\nThining factors for '%s' parameters: %s " % (chain, chain_thining))
            print("Post thining sample counts for '%s' parameters: %s\n\n" % (chain, pruned_sample_shape_dict))

        pruned_hmc_sample_chains = dict(pruned_hmc_sample_chains)

        return pruned_hmc_sample_chains

    @staticmethod
    def compute_grubin(param_chains_sample_dict):
        """
        Input
        -------
        param_chains_sample_dict: dictionary with parameters as keys and
                                array of chains of sample parameters values.
                                example: {'beta0': array([[-0.18649854, ..,-0.19441406]]),
                                            'sigma': array([[-0.18322189, ..,-0.19441406]])}

        Output
        -------
        Returns gelman-rubin statistics (potential scale reduction factor) value per parameter.
        """
        grubin_dict = {}
        for param, chain_list in param_chains_sample_dict.items():
            chain_list = np.asarray(chain_list, dtype=float)
            num_chains_J, L = map(float, chain_list.shape)
            if num_chains_J < 2 or L < 2:
                raise ValueError("gelman-rubin for '%s' needs at least 2 chains of 2 samples, got shape %s"
                                 % (param, chain_list.shape))
            chain_mean = np.mean(chain_list, axis=1).reshape((-1, 1))# shape (J, 1)

            grand_chain_mean = np.mean(chain_mean)# constant

            B = L * np.reciprocal(num_chains_J - 1) * np.sum(np.square(chain_mean - grand_chain_mean))# constant

            Sj_square = np.reciprocal(L - 1) * np.sum(np.square(chain_list - chain_mean), axis=1)# shape (J,)

            W = np.mean(Sj_square)
            if W == 0:
                raise ValueError("gelman-rubin for '%s' is undefined, every chain is constant" % param)

            grubin = round(float(np.sqrt(((L - 1) * np.reciprocal(L) * W + np.reciprocal(L) * B) / W)), 4)
            grubin_dict[param] = grubin
            print("\nGelmen-rubin for 'param' %s all chains is: %s" % (param, grubin))

        return grubin_dict

    @staticmethod
    def gelman_rubin_stats(pruned_hmc_sample_chains):
        """
        Input
        -------
        pruned_hmc_sample_chains: a dictionary with chain names as keys & dictionary of parameter vs
                                sampled values as values, example: {'chain_0': {'beta0': array([..])}, ..}

        Output
        -------
        Returns gelman-rubin statistics value given hmcs samples, chains of a parameter are truncated
        to the length of its shortest chain.
        """
        param_chains_sample_dict_ = {}
        param_chains_sample_dict = defaultdict(list)
        for chain, params_dict in pruned_hmc_sample_chains.items():
            for param in params_dict:
                param_chains_sample_dict[param].append(chain)

        for param, chain_list in param_chains_sample_dict.items():
            L = min(list(map(lambda chain: len(pruned_hmc_sample_chains[chain][param]), chain_list)))# find minimum of the chain
            param_chain_list = [np.asarray(pruned_hmc_sample_chains[chain][param])[:L].reshape((1, -1)) for chain in chain_list]
            param_chains_sample_dict_[param] = np.concatenate(param_chain_list, axis=0)

        return base.compute_grubin(param_chains_sample_dict_)

    @staticmethod
    def plot_chains(param_chain_matrix_df):
        """
        Input
        -------
        param_chain_matrix_df: Dataframe holding samples of parameters
                            with parameter names across rows chain names across columns.

        Output
        -------
        Plot intermixing chains for each parameter.

        """
        for param in param_chain_matrix_df.index:
            plt.figure(figsize=(10, 8))
            for chain in param_chain_matrix_df.columns:
                plt.plot(param_chain_matrix_df.loc[param, chain], label=chain)
            plt.legend()
            plt.title("Chain intermixing for '%s' samples" % param)
            plt.show()

    # ACF plots widgets
    @staticmethod
    def plot_autocorrelation(param_chain_matrix_df, param, chain_list, lags=40):
        for chain in chain_list:
            data = np.asarray(param_chain_matrix_df.loc[param][chain], dtype=float)
            fig = plot_acf(data, lags=min(int(lags), len(data) - 1),
                           title="Sample autocorrelation for '%s' from '%s'" % (param, chain))
            fig.set_figwidth(9)
            fig.set_figheight(5)
            plt.show()

    @staticmethod
    def autocorrelation_plots(param_chain_matrix_df):
        parameters = list(param_chain_matrix_df.index)
        chains = list(param_chain_matrix_df.columns)

        def radio_but_eventhandler(tick):
            print("Use 'Shift / Ctrl or Cmd' + Arrow keys to select chains")
            select_multiple = widgets.SelectMultiple(options=chains, value=[chains[0]],
                                                     description='Select Chains', disabled=False)
            select_multiple_output = widgets.Output()

            def select_multiple_eventhandler(change):
                select_multiple_output.clear_output()
                param = tick.owner.value
                with select_multiple_output:
                    base.plot_autocorrelation(param_chain_matrix_df, param, list(change.owner.value))

            clear_output()
            display(radio_but)
            select_multiple.observe(select_multiple_eventhandler, names='value')
            display(select_multiple)
            display(select_multiple_output)

        radio_but = widgets.RadioButtons(options=parameters, description='Parameters:', disabled=False)
        radio_but.observe(radio_but_eventhandler, names='value')
        display(radio_but)

    # Summaries
    @staticmethod
    def summary_stats_df(param_chain_matrix_df, key_metrics):
        """
        Input
        -------
        param_chain_matrix_df: Dataframe with parameter names across rows, chain names across columns
                            & array of samples in each cell.
        key_metrics: list of metric names from ["mean", "std", "25%", "50%", "75%"]

        Output
        -------
        Dataframe indexed by (metric, parameter) with one column per chain.
        """
        unknown = [metric for metric in key_metrics if metric not in ALL_METRICS]
        if unknown:
            raise ValueError("unknown metrics %s, use any of %s" % (unknown, ALL_METRICS))
        all_metric_func_map = lambda metric, vals: {"mean": np.mean, "std": np.std,
                                                    "25%": lambda v: np.quantile(v, 0.25),
                                                    "50%": lambda v: np.quantile(v, 0.50),
                                                    "75%": lambda v: np.quantile(v, 0.75)}[metric](vals)
        summary_stats_df = pd.DataFrame()
        for metric in key_metrics:
            final_di = {}
            for column in param_chain_matrix_df.columns:
                params_per_column_di = dict(param_chain_matrix_df[column].apply(lambda x: all_metric_func_map(metric, x)))
                final_di[column] = params_per_column_di
            metric_df_ = pd.DataFrame(final_di)
            metric_df_["metric"] = metric
            summary_stats_df = pd.concat([summary_stats_df, metric_df_], axis=0)

        summary_stats_df.reset_index(inplace=True)
        summary_stats_df.rename(columns={"index": "parameter"}, inplace=True)
        summary_stats_df.set_index(["metric", "parameter"], inplace=True)

        return summary_stats_df

    @staticmethod
    def summary_stats_df_2(fit_df, key_metrics):
        summary_stats_df = pd.DataFrame()
        parameters = base.ordered_parameters(set(fit_df.columns) - {"chain"})
        for param in parameters:
            for name, groupdf in fit_df.groupby("chain"):
                groupdi = dict(groupdf[param].describe())
                values = dict(map(lambda key: (key, [groupdi.get(key)]), key_metrics))

                values.update({"parameter": param, "chain": name})
                summary_stats_df_ = pd.DataFrame(values)
                summary_stats_df = pd.concat([summary_stats_df, summary_stats_df_], axis=0)
        summary_stats_df.set_index(["parameter", "chain"], inplace=True)

        return summary_stats_df

    @staticmethod
    def credible_intervals(fit_df, prob=0.9):
        """
        Input
        -------
        fit_df: dataframe of pooled draws, one column per parameter (plus 'chain').
        prob: probability mass covered by the intervals, default 0.9

        Output
        -------
        Dataframe indexed by parameter with posterior mean, std, equal-tailed interval
        (lower, upper) & highest posterior density interval (hpdi_lower, hpdi_upper).
        """
        if not 0 < prob < 1:
            raise ValueError("prob must lie in (0, 1), got %s" % prob)
        lower_q, upper_q = (1 - prob) / 2, 1 - (1 - prob) / 2
        records = []
        for param in base.ordered_parameters(fit_df.select_dtypes(include="number").columns):
            values = fit_df[param].to_numpy(dtype=float)
            hpdi_lower, hpdi_upper = hpdi(torch.tensor(values), prob=prob).tolist()
            records.append({"parameter": param, "mean": np.mean(values), "std": np.std(values),
                            "lower": np.quantile(values, lower_q), "upper": np.quantile(values, upper_q),
                            "hpdi_lower": hpdi_lower, "hpdi_upper": hpdi_upper})
        return pd.DataFrame(records).set_index("parameter")

    @staticmethod
    def summary(param_chain_matrix_df, layout=1):
        summarise = lambda metrics: base.summary_stats_df(param_chain_matrix_df, metrics) if layout != 2 \
            else base.summary_stats_df_2(param_chain_matrix_df, metrics)

        print("Select any value")
        dropdown = widgets.Dropdown(options=ALL_METRICS + ["ALL"])
        dropdown_output = widgets.Output()

        def dropdown_eventhandler(change):
            dropdown_output.clear_output()
            with dropdown_output:
                display(summarise(ALL_METRICS if change.new == "ALL" else [change.new]))

        dropdown.observe(dropdown_eventhandler, names='value')
        display(dropdown)
        display(dropdown_output)

    @staticmethod
    def plot_posterior_densities(hmc_sample_chains, chains=None):
        chains = chains if chains else list(hmc_sample_chains)
        for chain in chains:
            samples = hmc_sample_chains[chain]
            parameters = base.ordered_parameters(samples)
            fig = base.density_figure(dict((param, samples[param]) for param in parameters))
            fig.update_layout(title="parameter distribution for : %s" % (chain), xaxis_title="parameter values",
                              yaxis_title="density", legend_title="parameters")
            fig.show()

    @staticmethod
    def plot_parameters_for_n_chains(fit_df, chains=("chain_0",), parameters=None, plotting_cap=(4, 5), plot_interactive=False):
        """
        Input
        --------
        chains: list of valid chain names, example - ["chain_0"].

        parameters: list of valid parameters names, example -["beta0", "beta1", "beta2", "beta3", "sigma"],
                    defaults to all parameters in fit_df.

        plotting_cap: pair of Cap on number of chains & Cap on number of parameters to plot, example- (4, 5)
                    means cap the plotting of number of chains upto 4 & number of parameters upto 5 ONLY,
                    If at all the list size for Chains & parameters passed increases.

        plot_interactive: Flag for using Plotly if True, else Seaborn plots for False.


        output
        -------
        Plots box plots for each chain from list of chains with parameters on x axis.

        """
        parameters = list(parameters) if parameters else base.ordered_parameters(set(fit_df.columns) - {"chain"})
        chains = list(chains)
        chain_cap, param_cap = plotting_cap
        if len(chains) > chain_cap:
            print("Note: Cannot plot Number of chains greater than %s!" % chain_cap)
            chains = list(np.random.choice(chains, chain_cap, replace=False))
        if len(parameters) > param_cap:
            print("Note: Cannot plot Number of parameters greater than %s!" % param_cap)
            parameters = list(np.random.choice(parameters, param_cap, replace=False))

        for chain in chains:
            df_all_params_per_chain = fit_df.loc[fit_df["chain"] == chain, parameters].reset_index(drop=True)
            if df_all_params_per_chain.empty:
                print("Note: Chain number [%s] is Invalid in context of this model!" % chain)
                continue
            if plot_interactive:
                df_all_params_per_chain = df_all_params_per_chain.melt(var_name="parameters", value_name="values")
                fig = px.box(df_all_params_per_chain, x="parameters", y="values")
                fig.update_layout(height=600, width=900, title_text=f'{chain}')
                fig.show()
            else:
                sns.boxplot(data=df_all_params_per_chain)
                plt.title(f'{chain}')
                plt.show()

    @staticmethod
    def plot_joint_distribution(fit_df, parameters):
        all_combination_params = list(itertools.combinations(parameters, 2))
        for param1, param2 in all_combination_params:
            print("\nPyro -- %s" % (f'{param1} Vs. {param2}'))
            grid = sns.jointplot(data=fit_df, x=param1, y=param2, hue="chain")
            grid.figure.suptitle(f'{param1} Vs. {param2}')
            plt.show()

    @staticmethod
    def hexbin_plot(x, y, x_label, y_label):
        """

        Input
        -------
        x: Pandas series or list of values to plot on x axis.
        y: Pandas series or list of values to plot on y axis.
        x_label: variable name x label.
        y_label: variable name y label.


        Output
        -------
        Plot Hexbin correlation density plots for given values.


        """
        fig = plt.figure()
        ax = fig.add_subplot(1, 1, 1)
        min_x = min(list(x) + list(y)) - 0.1
        max_x = max(list(x) + list(y)) + 0.1
        ax.plot([min_x, max_x], [min_x, max_x])

        ax.set_xlim([min_x, max_x])
        ax.set_ylim([min_x, max_x])

        ax.set_title('{} vs. {} correlation scatterplot'.format(x_label, y_label))
        hbin = ax.hexbin(x, y, gridsize=25, mincnt=1, cmap=plt.cm.Reds)
        cb = fig.colorbar(hbin, ax=ax)
        cb.set_label('occurence_density')
        plt.ylabel(y_label)
        plt.xlabel(x_label)
        plt.show()

    @staticmethod
    def plot_interaction_hexbins(fit_df, parameters):
        for param1, param2 in itertools.combinations(parameters, 2):#Plots interaction between each of two parameters
            base.hexbin_plot(fit_df[param1], fit_df[param2], param1, param2)

    # Predictive checks
    @staticmethod
    def predictive_check_statistic(simulated_arr, observed, statistic=np.mean):
        """
        Input
        -------
        simulated_arr: replicated datasets shaped (S, N), one replicate per row
        observed: original observations shaped (N,)
        statistic: test quantity T computed on each dataset, default np.mean

        Output
        -------
        (T(y_rep) for every replicate, T(y), predictive p-value P(T(y_rep) >= T(y)))
        """
        simulated_arr = np.atleast_2d(np.asarray(simulated_arr, dtype=float))
        replicated = np.array([statistic(row) for row in simulated_arr])
        observed_value = float(statistic(np.asarray(observed, dtype=float)))
        p_value = float(np.mean(replicated >= observed_value))
        return replicated, observed_value, p_value

    @staticmethod
    def plot_predictive_check(simulated_arr, observed, statistic=np.mean, statistic_name="mean", flag="posterior"):
        replicated, observed_value, p_value = base.predictive_check_statistic(simulated_arr, observed, statistic)
        print("%s predictive p-value for %s: %s (observed %s)" % (flag.capitalize(), statistic_name, round(p_value, 4),
                                                                  round(observed_value, 4)))
        fig = px.histogram(x=replicated, nbins=40)
        fig.add_vline(x=observed_value, line_dash="dash", line_color="black", annotation_text="observed")
        fig.update_layout(title="%s predictive check: %s of simulated datasets" % (flag.capitalize(), statistic_name),
                          xaxis_title=statistic_name, yaxis_title="count")
        fig.show()
        return replicated, observed_value, p_value

    # Model comparison
    @classmethod
    def log_likelihood(cls, parameters, *data):
        raise NotImplementedError("%s does not define a log-likelihood" % cls.__name__)

    @classmethod
    def calculate_deviance_given_param(cls, parameters, *data):
        """
        D(Bt): -2 * summation of log likelihood of the observations given param 'Bt' over all the 'n' cases.
        """
        return -2 * float(cls.log_likelihood(parameters, *data))

    @classmethod
    def calculate_mean_deviance(cls, samples, *data):
        """
        D(Bt)_bar: Average of D(Bt) values calculated for each Bt (Bt is a single param value from chain of samples)
        """
        samples_count = len(next(iter(samples.values())))
        all_D_Bts = []
        for index in range(samples_count):
            samples_ = dict(map(lambda param: (param, samples.get(param)[index]), samples.keys()))
            all_D_Bts.append(cls.calculate_deviance_given_param(samples_, *data))
        return float(np.mean(all_D_Bts))

    @classmethod
    def DIC(cls, sample_chains, *data):
        """

        Input
        -------
        sample_chains : dictionary containing multiple chains of sampled values, with chain name as
                        key and sampled values of parameters.
        data: observed data arguments of the chapter's log-likelihood.

        Output
        -------
        Computes DIC per chain as 𝐷𝐼𝐶 = 2 𝐷(𝜃)_bar − 𝐷(𝜃_bar) where
        D_mean_parameters: 𝐷(𝜃_bar), deviance at the posterior mean of every parameter.
        D_Bt_mean: 𝐷(𝜃)_bar, average deviance over the samples of the chain.

        returns dictionary of chain name vs DIC.

        """
        dic_dict = {}
        for chain, samples in sample_chains.items():
            samples = dict(map(lambda param: (param, torch.as_tensor(samples.get(param))), samples.keys()))# np array to tensors

            mean_parameters = dict(map(lambda param: (param, torch.mean(samples.get(param).float())), samples.keys()))
            D_mean_parameters = cls.calculate_deviance_given_param(mean_parameters, *data)

            D_Bt_mean = cls.calculate_mean_deviance(samples, *data)
            dic_dict[chain] = round(2 * D_Bt_mean - D_mean_parameters, 3)
            print(". . .DIC for %s: %s" % (chain, dic_dict[chain]))
        print("\n. .Mean Deviance information criterion for all chains: %s\n" % (round(np.mean(list(dic_dict.values())), 3)))
        return dic_dict

    @classmethod
    def compare_DICs_given_model(cls, *data, **kwargs):
        """
        kwargs: dict of type {"model_name": sample_chains_dict}; returns {"model_name": {chain: DIC}}.
        """
        dic_per_model = {}
        for model_name, sample_chains in kwargs.items():
            print("%s\n\nFor model : %s" % ("_" * 30, model_name))
            dic_per_model[model_name] = cls.DIC(sample_chains, *data)
        return dic_per_model

    # Save & load
    @staticmethod
    def save_dataframe(param_chain_matrix_df, filepath):
        dirname = os.path.dirname(filepath)
        if dirname:
            os.makedirs(dirname, exist_ok=True)
        param_chain_matrix_df.to_csv(filepath, index=False)
        print("Saved at '%s'" % filepath)

    @staticmethod
    def load_dataframe(filepath):
        return pd.read_csv(filepath)

    @staticmethod
    def toggle_status(any_button, flag=0):
        time.sleep(0.3)
        if flag:
            any_button.icon = "hourglass-half"
            any_button.button_style = 'warning'
        else:
            any_button.icon = any_button.description.lower()
            any_button.button_style = "info"

    @staticmethod
    def save_main(save_button, param_chain_matrix_df, filepath):
        clear_output()
        display(save_button)
        base.toggle_status(save_button, 1)
        base.save_dataframe(param_chain_matrix_df, filepath)
        base.toggle_status(save_button, 0)

    @staticmethod
    def build_save_button():
        save_button = widgets.Button(
            description='Save',
            disabled=False,
            button_style='info',
            tooltip='save',
            icon="save"
        )
        return save_button

    @staticmethod
    def save_parameter_chain_dataframe(param_chain_matrix_df, filepath):
        save_button = base.build_save_button()
        save_func = lambda x: base.save_main(save_button, param_chain_matrix_df, filepath)
        save_button.on_click(save_func)
        display(save_button)

    @staticmethod
    def load_main(load_button):
        clear_output()
        for uploaded in load_button.value:
            string_representation = bytes(uploaded["content"]).decode('utf-8')
            param_chain_matrix_df = pd.read_csv(StringIO(string_representation))
            filename = uploaded["name"]

        base.toggle_status(load_button, 1)
        base.toggle_status(load_button, 0)
        print("Loaded '%s'" % filename)
        return param_chain_matrix_df

    @staticmethod
    def build_upload_button():
        load_button = widgets.FileUpload(accept='.csv',
                                         button_style='info',
                                         icon="upload",
                                         multiple=False)

        display(load_button)
        return load_button

    @staticmethod
    def load_parameter_chain_dataframe(load_button):
        if load_button.value:
            param_chain_matrix_df = base.load_main(load_button)
        else:
            param_chain_matrix_df = pd.DataFrame()
        return param_chain_matrix_df
