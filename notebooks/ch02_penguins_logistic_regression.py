#!/usr/bin/env python
# coding: utf-8

# ## Chapter 02: Logistic Regression
#
#
# ### 1. Introduction
#
# The Palmer penguins data ([Gorman, Williams & Fraser, 2014](https://doi.org/10.1371/journal.pone.0090081)) holds body measurements of 344 penguins of three species (Adelie, Chinstrap, Gentoo), collected on three islands of the Palmer Archipelago, Antarctica. For each bird the data records:
#
# - `bill_length_mm`, `bill_depth_mm`: length and depth of the culmen (the upper ridge of the bill).
# - `flipper_length_mm`: flipper length.
# - `body_mass_g`: body mass.
# - `sex`: `Male` or `Female`, missing for a handful of birds.
#
# Penguins are hard to sex in the field: males and females look alike. We ask whether the sex of a bird can be predicted from its body measurements, and how sure we can be about each prediction.
#
# The response is binary, so the Gaussian likelihood of Chapter 01 is out. We use a Bernoulli likelihood with the logistic link, i.e., Bayesian logistic regression. The code is glued in the `base` class of [chapter02.py](../regression_book/chapter_02/chapter02.py).

# In[1]:


import torch
import pyro
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import pyro.distributions as dist
from regression_book.chapter_02.chapter02 import base

pyro.set_rng_seed(1)

plt.style.use('default')

get_ipython().run_line_magic('matplotlib', 'inline')
get_ipython().run_line_magic('load_ext', 'autoreload')


# #### Data
# <br>
# The data is fetched from seaborn's dataset repository; pass a `csv` path to `load_data` to work offline.

# In[2]:


penguins_df = base.load_data()
print(penguins_df.shape)
print(penguins_df.isna().sum())

base.plot_original_y(penguins_df)


# Classes are balanced, within species too. Eleven birds have no recorded sex, and two have no measurements at all.

# In[3]:


base.plot_covariates(penguins_df)


# Within every pair of measurements the males sit up and to the right of the females. The species clusters are as visible as the sex ones though: a heavy female Gentoo outweighs any male Adelie. We'll come back to that.

# #### Preprocessing
# <br>
# `transform_data` does the following:
#
# - drops birds with a missing `sex`; birds with missing measurements are dropped too (pass `impute=True` to fill them with column means instead).
# - recodes the response to $y_i = 1$ for `Male` and $y_i = 0$ for `Female`.
# - standardizes the four measurements.
# - optionally one-hot encodes categorical covariates such as `species`, dropping the first level.

# In[4]:


X, y, covariate_names = base.transform_data(penguins_df)
print("X: %s, y: %s" % (X.shape, y.shape))
print("covariates: %s" % covariate_names)


# ### 2. Model Specification
# ________
# $y_{i}   \sim   Bern(\pi_{i})$
# <br>
# $logit(\pi_{i})  =  \log\frac{\pi_i}{1-\pi_i}  =   \beta_0 + \beta_1 X_{1i} + \beta_2 X_{2i} + \beta_3 X_{3i} + \beta_4 X_{4i}$
# <br>
# or
# <br>
# $\pi_{i}   =   \frac{1}{1 + e^{-(\beta_0 + \sum_k \beta_k X_{ki})}}$
# <br>
# <br>
# with $X_1 \dots X_4$ the standardised bill length, bill depth, flipper length and body mass.
#
# #### Stan model
#
# ```
# {
#     beta0 ~ normal(0, 10);
#     beta  ~ normal(0, 10);
#     y ~ bernoulli_logit(beta0 + X * beta);
# }
# ```
#
# We compare two priors on the coefficients:
#
# __Model A.__ $\beta_k \sim N(0, 10)$
#
# __Model B.__ $\beta_k \sim N(0, 1)$

# In[5]:


PenguinsModel = base.PenguinsModel

PenguinsModel


# In[6]:


num_samples = 1100

priors_a = base.init_priors(X=X)# N(0, 10) for every coefficient
prior_samples_a = base.get_prior_samples(num_samples=num_samples, **dict(zip(base.parameter_names_for(X), priors_a)))

priors_b = base.init_priors({"default": dist.Normal(0., 1.)}, X=X)
prior_samples_b = base.get_prior_samples(num_samples=num_samples, **dict(zip(base.parameter_names_for(X), priors_b)))

base.plot_prior_distributions(model_normal_a=prior_samples_a, model_normal_b=prior_samples_b)


# ### 3. Prior predictive checking
#
# We simulate a sex for every bird from parameters drawn from the prior, and use the proportion of males in each simulated dataset as the test statistic.

# In[7]:


prior_simulations, prior_checks = base.simulate_observations_given_prior_posterior_pairs(
    X, y, flag="prior", model_normal_a=prior_samples_a, model_normal_b=prior_samples_b)


# The proportion of males barely tells the two priors apart. What does is the predicted probability of each bird: with $N(0, 10)$ coefficients, $\eta$ is routinely in the $\pm 20$ range and nearly every bird is sexed with certainty a priori. The $N(0, 1)$ prior spreads the prior probability over $(0, 1)$.

# In[8]:


for model_name, prior_samples in [("model_normal_a", prior_samples_a), ("model_normal_b", prior_samples_b)]:
    probabilities = base.success_probability(prior_samples, X)
    print("%s: share of prior probabilities outside (0.01, 0.99): %s"
          % (model_name, round(np.mean((probabilities < 0.01) | (probabilities > 0.99)), 3)))


# ### 4. Posterior Estimation

# In[9]:


# PenguinsModel_A beta ~ Normal(0., 10.)

hmc_sample_chains_a, hmc_chain_diagnostics_a = base.get_hmc_n_chains(PenguinsModel, X, y, num_chains=4, sample_count=900,
                                                                     beta_prior=dist.Normal(0., 10.))


# In[10]:


# PenguinsModel_B beta ~ Normal(0., 1.)

hmc_sample_chains_b, hmc_chain_diagnostics_b = base.get_hmc_n_chains(PenguinsModel, X, y, num_chains=4, sample_count=900,
                                                                     beta_prior=dist.Normal(0., 1.))


# ### 5. MCMC Diagnostics

# #### Model-A Summaries

# In[11]:


base.get_chain_diagnostics(hmc_chain_diagnostics_a)


# In[12]:


beta_chain_matrix_df_A = pd.DataFrame(hmc_sample_chains_a)

base.plot_chains(beta_chain_matrix_df_A)


# In[13]:


base.autocorrelation_plots(beta_chain_matrix_df_A)


# In[14]:


thining_dict_a = base.get_thining_dict(hmc_sample_chains_a)

pruned_hmc_sample_chains_a = base.prune_hmc_samples(hmc_sample_chains_a, thining_dict_a)

grubin_values_a = base.gelman_rubin_stats(pruned_hmc_sample_chains_a)


# In[15]:


fit_df_A = base.chains_to_fit_df(pruned_hmc_sample_chains_a)

base.save_parameter_chain_dataframe(fit_df_A, "data/penguins_hmc_samples_2A.csv")


# Use following button to upload:
#
# * `"data/penguins_hmc_samples_2A.csv"` as `'fit_df_A'`

# In[16]:


load_button = base.build_upload_button()


# In[17]:


if load_button.value:
    fit_df_A = base.load_parameter_chain_dataframe(load_button)#Load "data/penguins_hmc_samples_2A.csv"


# In[18]:


base.summary(fit_df_A, layout=2)


# In[19]:


base.credible_intervals(fit_df_A, prob=0.9)


# In[20]:


base.plot_parameters_for_n_chains(fit_df_A, chains=list(fit_df_A["chain"].unique()), parameters=base.parameter_names_for(X),
                                  plot_interactive=True)

base.plot_posterior_densities(pruned_hmc_sample_chains_a)


# In[21]:


base.plot_joint_distribution(fit_df_A, ["beta1", "beta4"])


# #### Model-B Summaries

# In[22]:


base.get_chain_diagnostics(hmc_chain_diagnostics_b)

thining_dict_b = base.get_thining_dict(hmc_sample_chains_b)

pruned_hmc_sample_chains_b = base.prune_hmc_samples(hmc_sample_chains_b, thining_dict_b)

grubin_values_b = base.gelman_rubin_stats(pruned_hmc_sample_chains_b)


# In[23]:


fit_df_B = base.chains_to_fit_df(pruned_hmc_sample_chains_b)

base.save_parameter_chain_dataframe(fit_df_B, "data/penguins_hmc_samples_2B.csv")

base.credible_intervals(fit_df_B, prob=0.9)


# ### 6. Posterior predictive checking

# In[24]:


posterior_simulations, posterior_checks = base.simulate_observations_given_prior_posterior_pairs(
    X, y, flag="posterior", model_normal_a=fit_df_A, model_normal_b=fit_df_B)


# The observed proportion of males sits in the middle of the replicated ones for both models. Proportions are a weak test for a model with an intercept though; the predicted probability per bird is more telling.

# In[25]:


predicted_df = base.plot_predicted_probability(fit_df_A, X, y, covariate_index=3, covariate_name="body_mass_g")


# In[26]:


accuracy = np.mean((predicted_df["mean"] > 0.5) == (predicted_df["observed"] == 1))
print("In-sample accuracy of model A, posterior mean probability > 0.5: %s" % round(accuracy, 3))


# ### 7. Model Comparison

# In[27]:


base.compare_DICs_given_model(X, y, Penguins_normal_10=pruned_hmc_sample_chains_a,
                              Penguins_normal_1=pruned_hmc_sample_chains_b)


# #### Adding species
#
# Body size differs between species more than between sexes. Adding `species` as a categorical covariate lets the model compare a bird with its own species.

# In[28]:


X_species, y_species, covariate_names_species = base.transform_data(penguins_df, categorical=["species"])
print(covariate_names_species)

# beta5 & beta6 multiply the Chinstrap & Gentoo dummies
priors_c = base.init_priors({"default": dist.Normal(0., 1.)}, X=X_species)
prior_samples_c = base.get_prior_samples(num_samples=num_samples, **dict(zip(base.parameter_names_for(X_species), priors_c)))

prior_simulations_c, prior_checks_c = base.simulate_observations_given_prior_posterior_pairs(
    X_species, y_species, flag="prior", model_species=prior_samples_c)


# In[29]:


hmc_sample_chains_c, hmc_chain_diagnostics_c = base.get_hmc_n_chains(PenguinsModel, X_species, y_species, num_chains=4,
                                                                     sample_count=900, beta_prior=dist.Normal(0., 1.))

pruned_hmc_sample_chains_c = base.prune_hmc_samples(hmc_sample_chains_c, base.get_thining_dict(hmc_sample_chains_c))

base.credible_intervals(base.chains_to_fit_df(pruned_hmc_sample_chains_c), prob=0.9)


# In[30]:


base.compare_DICs_given_model(X_species, y_species, Penguins_species=pruned_hmc_sample_chains_c)


# ### 8. Commentary
#
# 1. Bill depth and body mass carry most of the information about sex; flipper length adds little once body mass is known.
# 2. The $N(0, 10)$ prior looks vague on the coefficients but is very informative on the probabilities. With 333 birds the data overwhelms it, and both priors agree a posteriori.
# 3. Accounting for species improves the fit markedly (lower DIC): "large" only means something relative to the bird's own species.
#
# ### 9. Exercises
#
# 1. Refit with `impute=True` and compare the posterior of each coefficient.
# 2. Add the `island` as a second categorical covariate. Does it add anything on top of species?
