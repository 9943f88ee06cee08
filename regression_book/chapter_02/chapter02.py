import time

import numpy as np
import pandas as pd
import torch
import pyro
import pyro.distributions as dist
import seaborn as sns
import matplotlib.pyplot as plt
import plotly.express as px

from regression_book.workflow import base as workflow_base


class base(workflow_base):
    covariates = ["bill_length_mm", "bill_depth_mm", "flipper_length_mm", "body_mass_g"]
    parameter_names = ["beta%s" % idx for idx in range(len(covariates) + 1)]
    default_priors = {"default": dist.Normal(0., 10.)}

    @staticmethod
    def load_data(data_path=None):
        """
        Input
        -------
        data_path: optional path of a csv copy of the Palmer penguins data; fetched through
                seaborn's dataset repository otherwise.

        Output
        --------
        raw penguins dataframe (species, island, bill/flipper/body measurements & sex).
        """
        if data_path:
            return pd.read_csv(data_path)
        return sns.load_dataset("penguins")

    @staticmethod
    def transform_data(penguins_df, covariates=None, categorical=None, response="sex",
                       positive_label="Male", impute=False):
        """
        Input
        -------
        penguins_df: raw penguins dataframe
        covariates: numeric columns to standardise, default bill length/depth, flipper length & body mass
        categorical: categorical columns to one-hot encode (first level dropped), example: ["species"]
        response: binary response column, default "sex"
        positive_label: response label coded as 1, everything else is coded as 0
        impute: fill missing numeric covariates with the column mean instead of dropping the rows

        Outputs
        ---------
        X: tensor shaped (N, p) of standardised covariates followed by dummy columns
        y: tensor shaped (N,) of recoded response
        covariate_names: column names of X, X[:, k] is multiplied by beta{k+1} in the model
        """
        covariates = list(covariates) if covariates else list(base.covariates)
        categorical = list(categorical) if categorical else []
        missing_columns = [column for column in covariates + categorical + [response] if column not in penguins_df.columns]
        if missing_columns:
            raise KeyError("columns %s are absent from the data" % missing_columns)

        raw_row_count = len(penguins_df.index)
        penguins_df = penguins_df[covariates + categorical + [response]].dropna(subset=[response] + categorical).copy()
        if impute:
            penguins_df[covariates] = penguins_df[covariates].fillna(penguins_df[covariates].mean())
        else:
            penguins_df = penguins_df.dropna(subset=covariates)
        if penguins_df.empty:
            raise ValueError("no rows left after handling missing values")

        y = torch.tensor((penguins_df[response] == positive_label).to_numpy(), dtype=torch.float)
        columns = [base.standardize(penguins_df[column]) for column in covariates]
        covariate_names = list(covariates)
        if categorical:
            dummies = pd.get_dummies(penguins_df[categorical], drop_first=True, dtype=float)
            columns += [torch.tensor(dummies[column].to_numpy(), dtype=torch.float) for column in dummies.columns]
            covariate_names += list(dummies.columns)
        X = torch.stack(columns, dim=1)

        print("Rows kept: %s of %s | positive label '%s' proportion: %s"
              % (len(y), raw_row_count, positive_label, round(y.mean().item(), 4)))
        return X, y, covariate_names

    @staticmethod
    def parameter_names_for(X):
        return ["beta%s" % idx for idx in range(X.shape[1] + 1)]

    @classmethod
    def init_priors(cls, prior_dict=None, names=None, X=None):
        """
        Same as the workflow's init_priors; passing X names the priors beta0..betap after the
        columns of X, example: 7 priors for the 4 measurements plus 2 species dummies.
        """
        if names is None and X is not None:
            names = cls.parameter_names_for(X)
        return super(base, cls).init_priors(prior_dict, names=names)

    @staticmethod
    def check_parameters(samples_dict, X):
        missing = [param for param in base.parameter_names_for(X) if param not in samples_dict]
        if missing:
            raise ValueError("samples for parameters %s are missing, X has %s columns; draw priors with "
                             "init_priors(X=X)" % (missing, np.shape(X)[1]))

    @staticmethod
    def PenguinsModel(X, y=None, beta_prior=None, **kwargs):
        """
        Input
        -------
        X: tensor shaped (N, p) of covariates
        y: tensor shaped (N,) of 0/1 responses, None to simulate
        beta_prior: pyro distribution shared by the intercept beta0 & coefficients beta1..betap
        kwargs: per parameter overrides, example: beta0=dist.Normal(0., 1.)

        Output
        --------
        Implements the logistic regression: {
                beta[k] ~ normal(0, 10);
                y[i] ~ bernoulli_logit(beta0 + beta[1] * X[i, 1] + .. + beta[p] * X[i, p]);}
        """
        beta_prior = beta_prior if beta_prior is not None else base.default_priors["default"]
        coefficients = [pyro.sample(name, kwargs.get(name, beta_prior)) for name in base.parameter_names_for(X)]
        mu = base.linear_predictor(coefficients, X)
        with pyro.plate("data", X.shape[0]):
            pyro.sample("obs", dist.Bernoulli(logits=mu), obs=y)

    @staticmethod
    def log_likelihood(parameters, X, y):
        """Summation of Bernoulli log likelihood of y given one draw of beta0..betap."""
        coefficients = [torch.as_tensor(parameters[name], dtype=torch.float) for name in base.parameter_names_for(X)]
        mu = base.linear_predictor(coefficients, X)
        return dist.Bernoulli(logits=mu).log_prob(torch.as_tensor(y, dtype=torch.float)).sum()

    @staticmethod
    def success_probability(samples, X):
        """Probability of the positive label per draw & row, shaped (S, N)."""
        X = np.asarray(X, dtype=float)
        base.check_parameters(samples, X)
        coefficients = [np.asarray(samples[name], dtype=float).reshape((-1, 1)) for name in base.parameter_names_for(X)]
        return base.link_function("sigmoid", base.linear_predictor(coefficients, X))

    @staticmethod
    def simulate_observations_given_param(X, parameter_pair_list):
        """
        Input
        -------
        X: covariates shaped (N, p)
        parameter_pair_list: list of (beta0, .., betap) tuples

        Output
        --------
        0/1 array shaped (S, N) holding one simulated response vector per parameter tuple.
        """
        t1 = time.time()
        parameters_arr = np.asarray(parameter_pair_list, dtype=float).reshape((-1, np.shape(X)[1] + 1))
        samples = dict(zip(base.parameter_names_for(X), parameters_arr.T))
        simulated_data_arr = np.random.binomial(1, base.success_probability(samples, X))

        total_time = time.time() - t1
        print("Total execution time: %s\n" % total_time)
        return simulated_data_arr

    @staticmethod
    def simulate_observations_given_prior_posterior_pairs(X, original_data, statistic=np.mean,
                                                          statistic_name="proportion of males", flag="prior", **kwargs):
        """
        Input
        -------
        X: covariates shaped (N, p)
        original_data: observed 0/1 responses shaped (N,)
        statistic: test quantity compared between simulated & observed responses, default np.mean,
                i.e., the proportion of the positive label
        flag: "prior" or "posterior", used in titles only
        kwargs: model name vs dictionary of parameter vs samples, example: model_a=prior_samples_a

        Output
        --------
        (dictionary of model name vs simulated array shaped (S, N),
        dictionary of model name vs (T(y_rep), T(y), p-value))
        """
        simulated_dict, checks_dict = {}, {}
        for model_name, samples_dict in kwargs.items():
            print("___________\n\nFor model '%s' %s" % (model_name, flag))
            base.check_parameters(samples_dict, X)
            parameters_pairs = list(zip(*[samples_dict[param] for param in base.parameter_names_for(X)]))
            print("total samples count:", len(parameters_pairs), " sample example: ", parameters_pairs[:2])
            simulated_dict[model_name] = base.simulate_observations_given_param(X, parameters_pairs)
            checks_dict[model_name] = base.plot_predictive_check(simulated_dict[model_name], original_data,
                                                                 statistic=statistic, statistic_name=statistic_name,
                                                                 flag=flag)
        return simulated_dict, checks_dict

    @staticmethod
    def predicted_probability(samples, X, prob=0.9):
        """
        Input
        -------
        samples: dictionary of parameter vs posterior samples
        X: covariates shaped (N, p)
        prob: mass of the equal-tailed band, default 0.9

        Output
        --------
        dataframe with posterior mean, lower & upper band of P(y=1) for every row of X.
        """
        probabilities = base.success_probability(samples, X)
        lower_q, upper_q = (1 - prob) / 2, 1 - (1 - prob) / 2
        return pd.DataFrame({"mean": probabilities.mean(axis=0),
                             "lower": np.quantile(probabilities, lower_q, axis=0),
                             "upper": np.quantile(probabilities, upper_q, axis=0)})

    @staticmethod
    def plot_predicted_probability(samples, X, y, covariate_index=0, covariate_name=None, prob=0.9):
        covariate_name = covariate_name if covariate_name else "X[:, %s]" % covariate_index
        predicted_df = base.predicted_probability(samples, X, prob=prob)
        predicted_df["covariate"] = np.asarray(X, dtype=float)[:, covariate_index]
        predicted_df["observed"] = np.asarray(y, dtype=float)
        predicted_df = predicted_df.sort_values("covariate")

        plt.figure(figsize=(10, 6))
        plt.errorbar(predicted_df["covariate"], predicted_df["mean"],
                     yerr=[predicted_df["mean"] - predicted_df["lower"], predicted_df["upper"] - predicted_df["mean"]],
                     fmt="o", alpha=0.5, label="posterior mean & %s%% band" % int(prob * 100))
        plt.scatter(predicted_df["covariate"], predicted_df["observed"], marker="x", color="black", label="observed")
        plt.xlabel("%s (standardised)" % covariate_name)
        plt.ylabel("P(y=1)")
        plt.legend()
        plt.title("Posterior predicted probability against '%s'" % covariate_name)
        plt.show()
        return predicted_df

    @staticmethod
    def plot_original_y(penguins_df, response="sex"):
        """Counts of the response categories per species, missing labels shown as 'missing'."""
        counts_df = penguins_df.assign(**{response: penguins_df[response].fillna("missing")})
        fig = px.histogram(counts_df, x=response, color="species" if "species" in counts_df.columns else None,
                           barmode="group")
        fig.update_layout(title="Observed '%s' labels" % response, xaxis_title=response, yaxis_title="count")
        fig.show()

    @staticmethod
    def plot_covariates(penguins_df, covariates=None, response="sex"):
        covariates = list(covariates) if covariates else list(base.covariates)
        sns.pairplot(data=penguins_df.dropna(subset=covariates + [response]), vars=covariates, hue=response)
        plt.show()
