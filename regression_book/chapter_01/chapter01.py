import time

import numpy as np
import pandas as pd
import torch
import pyro
import pyro.distributions as dist
import plotly.express as px

from regression_book.workflow import base as workflow_base


stacks_data = {"p": 3, "N": 21,
               "Y": [42, 37, 37, 28, 18, 18, 19, 20, 15, 14, 14, 13, 11, 12, 8, 7, 8, 8, 9, 15, 15],
               "air_flow": [80, 80, 75, 62, 62, 62, 62, 62, 58, 58, 58, 58, 58, 58, 50, 50, 50, 50, 50, 56, 70],
               "water_temp": [27, 27, 25, 24, 22, 23, 24, 24, 23, 18, 18, 17, 18, 19, 18, 18, 19, 19, 20, 20, 20],
               "acid_conc": [89, 88, 90, 87, 87, 87, 93, 93, 87, 80, 89, 88, 82, 93, 89, 86, 72, 79, 80, 82, 91]}


class base(workflow_base):
    parameter_names = ["beta0", "beta1", "beta2", "beta3", "sigma"]
    default_priors = {"default": dist.Normal(0., 316.), "sigma": dist.InverseGamma(0.001, 0.001)}

    @staticmethod
    def load_dataframe():
        """Raw stack-loss data: 21 days of plant operation."""
        return pd.DataFrame({"air_flow": stacks_data["air_flow"], "water_temp": stacks_data["water_temp"],
                             "acid_conc": stacks_data["acid_conc"], "stack_loss": stacks_data["Y"]})

    @staticmethod
    def load_data():
        """
        Input
        -------

        Output
        --------
        [X1, X2, X3, Y]: standardised air flow, water temperature & acid concentration tensors,
        followed by the raw stack loss tensor, each shaped (21,).
        """
        stacks_df = base.load_dataframe()
        stacks_data_ = [base.standardize(stacks_df[column]) for column in ["air_flow", "water_temp", "acid_conc"]]
        stacks_data_.append(torch.tensor(stacks_df["stack_loss"].to_numpy(), dtype=torch.float))
        return stacks_data_

    @staticmethod
    def StackModel(X1, X2, X3, Y=None, beta_prior=None, sigma_prior=None, **kwargs):
        """
        Input
        -------
        X1, X2, X3: standardised covariate tensors, each shaped (N,)
        Y: tensor of observed stack loss shaped (N,), None to simulate
        beta_prior: pyro distribution shared by beta0..beta3
        sigma_prior: pyro distribution on the variance of the response
        kwargs: per parameter overrides of beta0..beta3 & sigma, example: beta0=dist.Normal(17., 10.)

        Output
        --------
        Implements BUGS stacks model: {
                mu[i] <- beta0 + beta1 * z[i, 1] + beta2 * z[i, 2] + beta3 * z[i, 3]
                Y[i] ~ dnorm(mu[i], tau)
                beta[j] ~ dnorm(0, 0.00001); sigma <- 1/tau}
        """
        beta_prior = beta_prior if beta_prior is not None else base.default_priors["default"]
        sigma_prior = sigma_prior if sigma_prior is not None else base.default_priors["sigma"]
        beta0 = pyro.sample("beta0", kwargs.get("beta0", beta_prior))
        beta1 = pyro.sample("beta1", kwargs.get("beta1", beta_prior))
        beta2 = pyro.sample("beta2", kwargs.get("beta2", beta_prior))
        beta3 = pyro.sample("beta3", kwargs.get("beta3", beta_prior))
        sigma = pyro.sample("sigma", kwargs.get("sigma", sigma_prior))
        sigma = torch.sqrt(sigma)

        mu = base.link_function("identity", base.linear_predictor([beta0, beta1, beta2, beta3], [X1, X2, X3]))
        with pyro.plate("data", len(X1)):
            pyro.sample("obs", dist.Normal(mu, sigma), obs=Y)

    @staticmethod
    def log_likelihood(parameters, X1, X2, X3, Y):
        """Summation of Normal log likelihood of Y given one draw of beta0..beta3 & sigma (variance)."""
        coefficients = [torch.as_tensor(parameters[param], dtype=torch.float) for param in ["beta0", "beta1", "beta2", "beta3"]]
        mu = base.linear_predictor(coefficients, [X1, X2, X3])
        scale = torch.sqrt(torch.as_tensor(parameters["sigma"], dtype=torch.float))
        return dist.Normal(mu, scale).log_prob(torch.as_tensor(Y, dtype=torch.float)).sum()

    @staticmethod
    def plot_original_y(original_obs, ylabel=None):
        """

        Input
        -------
        original_obs: original observations/ labels from given data, shaped (N,) or (M, N)

        Output
        --------
        Plots scatter plot of all observed values of stack loss against the N-th day.

        """
        original_obs = np.asarray(original_obs)
        num_obs = original_obs.shape[0] if original_obs.ndim != 1 else 1
        obs_column_names = [f'Observation_{ind+1}' for ind in range(num_obs)] if num_obs != 1 else ["Observations"]
        obs_y_df = pd.DataFrame(original_obs.T, columns=obs_column_names)

        if ylabel is None:
            ylabel = "Stack loss"

        obs_y_title = "stack-loss distribution"
        fig = px.scatter(obs_y_df, title=obs_y_title)
        fig.update_layout(title=obs_y_title, xaxis_title="N-th Day", yaxis_title=ylabel, legend_title="Observation palette")
        fig.show()

    @staticmethod
    def plot_y_violin(obs_y, original_obs, ylabel=None, prior_simulations=None):
        """

        Input
        -------
        obs_y: simulated observations shaped (S, N), one simulated dataset per row.
        original_obs: original observations for given data, shaped (N,).
        prior_simulations: observations simulated from the prior shaped (S', N), when obs_y
                        comes from the posterior.

        Output
        --------
        Plots violin plot per day of simulated values of stack loss along with the original one,
        returns the long dataframe behind the plot.

        """
        flag = "posterior" if prior_simulations is not None else "prior"
        if ylabel is None:
            ylabel = "Stack loss [original & simulated values]"
        original_obs = np.asarray(original_obs, dtype=float)
        obs_y_with_original_data_df = pd.DataFrame()

        obs_y_df = pd.DataFrame(np.asarray(obs_y)).melt(var_name="parameters", value_name="values")

        note_text = "'%s_day_X' corresponds to observations simulated from %s of the given model" % (flag, flag)
        if prior_simulations is not None:#Df with original Y, prior & posterior
            ylabel = 'Stack loss [original, simulated priors & posteriors]'
            note_text += ", 'prior_day_X' corresponds to observations simulated from prior of the given model"
        for param, groupdf in obs_y_df.groupby("parameters"):
            index = param + 1
            groupdf = groupdf.assign(parameters="%s_day_%s" % (flag, index))
            original_df = pd.DataFrame([{"parameters": "day_%s *" % (index), "values": original_obs[param]}])
            day_frames = [groupdf, original_df]
            if prior_simulations is not None:
                prior_obs_df = pd.DataFrame({"parameters": "prior_day_%s" % (index),
                                             "values": np.asarray(prior_simulations)[:, param]})
                day_frames.insert(0, prior_obs_df)
            obs_y_with_original_data_df = pd.concat([obs_y_with_original_data_df] + day_frames)

        note_text += ", 'day_X *' corresponds to the original observations for N-th day."
        print("\n%s\n%s\n%s" % ("_" * 55, "_" * 70, note_text))
        obs_y_title = "stack-loss distribution"
        fig = px.violin(obs_y_with_original_data_df, x="parameters", y="values", box=True,# draw box plot inside the violin
                        points='all',# can be 'outliers', or False
                        )
        fig.update_layout(title=obs_y_title, height=600, width=900, xaxis_title="N-th Day observation",
                          yaxis_title=ylabel, legend_title="Observation palette")
        fig.show()

        return obs_y_with_original_data_df.reset_index(drop=True)

    @staticmethod
    def simulate_observations_given_param(X1, X2, X3, parameter_pair_list=[(17.5, 5.3, 1.8, -0.6, 10.5)]):
        """
        Input
        -------
        X1, X2, X3: standardised covariates, each shaped (N,)
        parameter_pair_list: list of (beta0, beta1, beta2, beta3, sigma) tuples, sigma being the variance

        Output
        --------
        array shaped (S, N) holding one simulated stack-loss dataset per parameter tuple.
        """
        t1 = time.time()
        parameters_arr = np.asarray(parameter_pair_list, dtype=float).reshape((-1, 5))
        coefficients = [parameters_arr[:, [idx]] for idx in range(4)]# each shaped (S, 1)
        covariates = [np.asarray(x, dtype=float) for x in (X1, X2, X3)]

        mu = base.linear_predictor(coefficients, covariates)# (S, N)
        simulated_data_arr = np.random.normal(mu, np.sqrt(parameters_arr[:, [4]]))

        total_time = time.time() - t1
        print("Total execution time: %s\n" % total_time)
        return simulated_data_arr

    @staticmethod
    def simulate_observations_given_prior_posterior_pairs(X1, X2, X3, original_data, prior_simulations=None, **kwargs):
        """
        Input
        -------
        X1, X2, X3: standardised covariates, each shaped (N,)
        original_data: original stack loss observations shaped (N,)
        prior_simulations: dictionary of model name vs prior simulated array, as returned by a previous
                        call with prior samples; marks the current call as posterior simulation.
        kwargs: model name vs dictionary of parameter vs samples, example: model_a=prior_samples_a

        Output
        --------
        (dictionary of model name vs simulated array shaped (S, N),
        dictionary of model name vs dataframe behind the violin plot)
        """
        flag = "posterior" if prior_simulations is not None else "prior"
        simulated_dict, violin_df_dict = {}, {}
        for model_name, samples_dict in kwargs.items():
            print("___________\n\nFor model '%s' %s" % (model_name, flag))
            parameters_pairs = list(zip(*[samples_dict[param] for param in base.parameter_names]))
            print("total samples count:", len(parameters_pairs), " sample example: ", parameters_pairs[:2])
            simulated_arr = base.simulate_observations_given_param(X1, X2, X3, parameters_pairs)# shaped (S, 21)

            model_prior_simulations = prior_simulations.get(model_name) if prior_simulations is not None else None
            simulated_dict[model_name] = simulated_arr
            violin_df_dict[model_name] = base.plot_y_violin(simulated_arr, original_data,
                                                            prior_simulations=model_prior_simulations)

        return simulated_dict, violin_df_dict
