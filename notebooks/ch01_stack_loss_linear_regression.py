#!/usr/bin/env python
# coding: utf-8

# ## Chapter 01: Linear Regression
#
#
# ### 1. Introduction
#
# Brownlee's stack loss plant data (1965) records 21 days of operation of a plant oxidising ammonia to nitric acid. On each day the plant engineers noted three operating conditions and one outcome:
#
# 1. `air_flow`: flow of cooling air, a proxy for the rate of operation of the plant.
# 2. `water_temp`: temperature of the cooling water circulated through the absorption tower.
# 3. `acid_conc`: concentration of the acid circulating, minus 50, times 10.
# 4. `stack_loss`: ten times the percentage of the ingoing ammonia that escapes unabsorbed, i.e., the loss we'd like to keep low.
#
# The question is simple: how does stack loss depend on the three operating conditions, and how sure can we be about it?
#
# The dataset is a classic of robust regression and also appears in the WinBUGS examples [Vol1](https://www.mrc-bsu.cam.ac.uk/wp-content/uploads/WinBUGS_Vol1.pdf), where it is fitted with normal, double exponential and t errors. We stick to normal errors here: a Gaussian likelihood with the identity link, i.e., the Bayesian counterpart of ordinary least squares.
#
# All the code is glued in the `base` class of [chapter01.py](../regression_book/chapter_01/chapter01.py), which extends the shared workflow helpers in [workflow.py](../regression_book/workflow.py).

# In[1]:


import torch
import pyro
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import pyro.distributions as dist
from regression_book.chapter_01.chapter01 import base

pyro.set_rng_seed(1)

plt.style.use('default')

get_ipython().run_line_magic('matplotlib', 'inline')
get_ipython().run_line_magic('load_ext', 'autoreload')


# #### Data
# <br>
# The data has 21 rows, one per day. The plot that follows shows the observed stack loss against the day of operation.

# In[2]:


stacks_df = base.load_dataframe()
print(stacks_df.describe())

base.plot_original_y(stacks_df["stack_loss"].values)


# Stack loss is high on the first four days, when the plant ran at a high rate of operation, and settles between 7 and 20 afterwards.

# #### Preprocessing
# <br>
# The three covariates live on very different scales (air flow is in the 50-80 range, acid concentration in the 70-90 range). We standardize each of them,
# <br>
# <br>
# $X_k = \frac{x_k - \bar{x}_k}{s_{x_k}}$
# <br>
# <br>
# so that a single prior scale is reasonable for every coefficient, and so that the intercept reads as the expected stack loss on an average day.

# In[3]:


X1, X2, X3, Y = base.load_data()
print("X1: %s, X2: %s, X3: %s, Y: %s" % (X1.shape, X2.shape, X3.shape, Y.shape))
print("\nSample X1 (air flow, standardised): %s" % X1[:5])


# ### 2. Model Specification
# ________
# The sampling distribution of the generative model is:
# <br>
# <br>
# $Y_{i}   \sim   N(\mu_{i}, \sigma)$
# <br>
# $\mu_{i}   =   \beta_0 + \beta_1 X_{1i} + \beta_2 X_{2i} + \beta_3 X_{3i}$
# <br>
# <br>
# Here $\sigma$ is the _variance_ of the errors (the model draws with standard deviation $\sqrt{\sigma}$), to stay close to the precision parameterisation of the BUGS model.
#
# #### BUGS model
#
# ```model
#     {
#         for (i in 1 : N) {
#             Y[i] ~ dnorm(mu[i], tau)
#             mu[i] <- beta0 + beta[1] * z[i, 1] + beta[2] * z[i, 2] + beta[3] * z[i, 3]
#         }
#         beta0 ~ dnorm(0, 0.00001)
#         for (j in 1 : p) {
#             beta[j] ~ dnorm(0, 0.00001)
#         }
#         tau ~ dgamma(0.001, 0.001)
#         sigma <- 1 / sqrt(tau)
#     }
# ```
#
# A $Gamma(0.001, 0.001)$ prior on the precision is an $InverseGamma(0.001, 0.001)$ prior on the variance. We fit two models:
#
# __Model A.__ (the BUGS priors)
# <br>
# $\beta_k \sim N(0, 316)$
# <br>
# $\sigma \sim InverseGamma(0.001, 0.001)$
#
# __Model B.__ (weakly informative priors)
# <br>
# $\beta_k \sim N(0, 10)$
# <br>
# $\sigma \sim HalfCauchy(5)$

# #### Model implementation
#
# The above models are defined in `base.StackModel`

# In[4]:


StackModel = base.StackModel

StackModel


# Let us also draw few samples from the priors, and look at their distribution

# In[5]:


num_samples = 1100

beta0_a, beta1_a, beta2_a, beta3_a, sigma_a = base.init_priors()# default priors are the ones of model A
prior_samples_a = base.get_prior_samples(num_samples=num_samples, beta0=beta0_a, beta1=beta1_a, beta2=beta2_a,
                                         beta3=beta3_a, sigma=sigma_a)

beta0_b, beta1_b, beta2_b, beta3_b, sigma_b = base.init_priors({"default": dist.Normal(0., 10.), "sigma": dist.HalfCauchy(5.)})
prior_samples_b = base.get_prior_samples(num_samples=num_samples, beta0=beta0_b, beta1=beta1_b, beta2=beta2_b,
                                         beta3=beta3_b, sigma=sigma_b)


# In[6]:


base.plot_prior_distributions(model_normal_a={k: v for k, v in prior_samples_a.items() if k != "sigma"},
                              model_normal_b={k: v for k, v in prior_samples_b.items() if k != "sigma"})


# The variance priors are left out of the density plot above: the inverse gamma draws span dozens of orders of magnitude and flatten every other curve.

# ### 3. Prior predictive checking
#
# Prior predictive checking (PiPC): simulate stack loss for each of the 21 days from parameters drawn from the prior, and compare with the observed values (marked with `*`).

# In[7]:


prior_simulations, prior_violin_dfs = base.simulate_observations_given_prior_posterior_pairs(
    X1, X2, X3, Y, model_normal_a=prior_samples_a, model_normal_b=prior_samples_b)


# Under model A a noticeable share of the simulated days is orders of magnitude away from anything a plant could produce: the "vague" inverse gamma prior on the variance is anything but vague for the response. Model B simulations are wide too, but on the scale of the data.

# ### 4. Posterior Estimation
#
# Posterior $P(\beta, \sigma | Y) \propto P(Y | \beta, \sigma) \pi(\beta, \sigma)$ is approximated with the [NUTS](https://arxiv.org/pdf/1111.4246.pdf) sampler. `get_hmc_n_chains` runs `num_chains` independent chains; `sample_count` is the number of draws to keep per chain after discarding the warm-up (`burnin_percentage`) and thinning (`thining_percentage`).

# In[8]:


# StackModel_A beta ~ Normal(0., 316.), sigma ~ InverseGamma(0.001, 0.001)

hmc_sample_chains_a, hmc_chain_diagnostics_a = base.get_hmc_n_chains(StackModel, X1, X2, X3, Y, num_chains=4,
                                                                     sample_count=900, beta_prior=dist.Normal(0., 316.),
                                                                     sigma_prior=dist.InverseGamma(0.001, 0.001))


# In[9]:


# StackModel_B beta ~ Normal(0., 10.), sigma ~ HalfCauchy(5.)

hmc_sample_chains_b, hmc_chain_diagnostics_b = base.get_hmc_n_chains(StackModel, X1, X2, X3, Y, num_chains=4,
                                                                     sample_count=900, beta_prior=dist.Normal(0., 10.),
                                                                     sigma_prior=dist.HalfCauchy(5.))


# `hmc_sample_chains` holds sampled MCMC values as `{"chain_0": {"beta0": [17.5, 17.2, . .], "beta1": [. .], . .}, "chain_1": {. .}. .}`

# ### 5. MCMC Diagnostics
#
# - __Burn-in__: the warm-up draws are discarded by the sampler already; trace plots show whether that was enough.
# - __Thinning__: keep every k-th draw, with k the first lag at which the ACF drops below 0.1.
# - __Mixing__: chains should be indistinguishable; the Gelman-Rubin statistic compares within-chain to between-chain variance and should be close to 1.
#
# Pyro's own per chain diagnostics (effective sample size, split $\hat{R}$, divergences) come first.

# In[10]:


base.get_chain_diagnostics(hmc_chain_diagnostics_a)


# #### Model-A Summaries

# In[11]:


beta_chain_matrix_df_A = pd.DataFrame(hmc_sample_chains_a)

base.save_parameter_chain_dataframe(beta_chain_matrix_df_A, "data/stack_loss_parameter_chain_matrix_1A.csv")


# ##### A.1 Intermixing chains

# In[12]:


base.plot_chains(beta_chain_matrix_df_A)


# ##### A.2 ACF plots & pruning

# In[13]:


base.autocorrelation_plots(beta_chain_matrix_df_A)


# In[14]:


thining_dict_a = base.get_thining_dict(hmc_sample_chains_a)
print(thining_dict_a)

pruned_hmc_sample_chains_a = base.prune_hmc_samples(hmc_sample_chains_a, thining_dict_a)


# ##### A.3 G-R statistic

# In[15]:


grubin_values_a = base.gelman_rubin_stats(pruned_hmc_sample_chains_a)


# ##### A.4 Descriptive summary

# In[16]:


beta_chain_matrix_df_A = pd.DataFrame(pruned_hmc_sample_chains_a)

base.summary(beta_chain_matrix_df_A)


# In[17]:


fit_df_A = base.chains_to_fit_df(pruned_hmc_sample_chains_a)

base.save_parameter_chain_dataframe(fit_df_A, "data/stack_loss_hmc_samples_1A.csv")


# Use following button to upload:
#
# * `"data/stack_loss_hmc_samples_1A.csv"` as `'fit_df_A'`

# In[18]:


# Use following to load data once the results from pyro sampling operation are saved offline
load_button = base.build_upload_button()


# In[19]:


if load_button.value:
    fit_df_A = base.load_parameter_chain_dataframe(load_button)#Load "data/stack_loss_hmc_samples_1A.csv"


# In[20]:


base.summary(fit_df_A, layout=2)


# Posterior mean, 90% equal-tailed credible interval and 90% highest posterior density interval per parameter, all chains pooled:

# In[21]:


base.credible_intervals(fit_df_A, prob=0.9)


# ##### A.5 Additional plots

# In[22]:


parameters = base.parameter_names
chains = fit_df_A["chain"].unique()

base.plot_parameters_for_n_chains(fit_df_A, chains=list(chains), parameters=parameters, plot_interactive=True)


# In[23]:


base.plot_posterior_densities(pruned_hmc_sample_chains_a, chains=["chain_0"])


# In[24]:


base.plot_joint_distribution(fit_df_A, ["beta1", "beta2"])

base.plot_interaction_hexbins(fit_df_A, ["beta1", "beta2", "beta3"])


# Air flow ($\beta_1$) and water temperature ($\beta_2$) are correlated a posteriori: both covariates move together in the data (the plant ran hot when it ran fast), so the likelihood cannot fully separate their effects.

# #### Model-B Summaries

# In[25]:


base.get_chain_diagnostics(hmc_chain_diagnostics_b)


# In[26]:


beta_chain_matrix_df_B = pd.DataFrame(hmc_sample_chains_b)

base.plot_chains(beta_chain_matrix_df_B)


# In[27]:


thining_dict_b = base.get_thining_dict(hmc_sample_chains_b)

pruned_hmc_sample_chains_b = base.prune_hmc_samples(hmc_sample_chains_b, thining_dict_b)

grubin_values_b = base.gelman_rubin_stats(pruned_hmc_sample_chains_b)


# In[28]:


fit_df_B = base.chains_to_fit_df(pruned_hmc_sample_chains_b)

base.save_parameter_chain_dataframe(fit_df_B, "data/stack_loss_hmc_samples_1B.csv")

base.credible_intervals(fit_df_B, prob=0.9)


# ### 6. Posterior predictive checking
#
# Same as the prior predictive check, with parameter draws from the posterior. The prior simulations are passed along so that prior, posterior and observed values share one violin plot per day.

# In[29]:


posterior_simulations, posterior_violin_dfs = base.simulate_observations_given_prior_posterior_pairs(
    X1, X2, X3, Y, prior_simulations=prior_simulations, model_normal_a=fit_df_A, model_normal_b=fit_df_B)


# A single number can also summarize the check: for each simulated dataset compute a test statistic $T(y^{rep})$ and compare with $T(y)$. The posterior predictive p-value $P(T(y^{rep}) \ge T(y))$ should not be too close to 0 or 1.

# In[30]:


for model_name, simulated_arr in posterior_simulations.items():
    print("____\nFor '%s'" % model_name)
    base.plot_predictive_check(simulated_arr, Y, statistic=np.max, statistic_name="maximum stack loss")
    base.plot_predictive_check(simulated_arr, Y, statistic=np.std, statistic_name="std of stack loss")


# ### 7. Model Comparison
#
# #### DIC
#
# The Deviance Information Criterion is
# <br>
# <br>
# $DIC = 2\ \overline{D(\theta)} - D(\bar{\theta})$, with $D(\theta) = -2 \log P(Y | \theta)$
# <br>
# <br>
# where $\overline{D(\theta)}$ is the deviance averaged over posterior draws, and $D(\bar{\theta})$ the deviance at the posterior mean. Lower is better.

# In[31]:


base.compare_DICs_given_model(X1, X2, X3, Y, Stack_loss_bugs_priors=pruned_hmc_sample_chains_a,
                              Stack_loss_weak_priors=pruned_hmc_sample_chains_b)


# ### 8. Commentary
#
# 1. Air flow is the dominant driver of stack loss; its coefficient is positive and well away from zero under both priors.
# 2. Water temperature has a smaller positive effect, and the sign of acid concentration is not settled by 21 days of data.
# 3. The BUGS priors look harmless but produce absurd prior predictive simulations. With 21 observations the likelihood overrides them and both models end up with nearly identical posteriors and DICs.
# 4. The first four days and day 21 sit at the edge of the posterior predictive violins. The robust (double exponential, t) error models of the WinBUGS example are the natural next step.
#
# ### 9. Exercises
#
# 1. Replace the Gaussian likelihood with a Student-t one, with the degrees of freedom as an unknown, and compare the DICs.
# 2. Refit without standardizing the covariates and inspect the effective sample sizes.
