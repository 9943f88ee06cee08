#!/usr/bin/env python
# coding: utf-8

# ## Foreword

# ### Objective:
#
# - Walk through Bayesian regression end-to-end, with real data and a Probabilistic Programming Language.
# - Show every step of the workflow as runnable code, sitting next to the math it implements.
#
# ### Why regression first?
#
# Regression is where most practitioners meet statistics, and most of them meet it through least squares: a point estimate, a p-value and a residual plot. The Bayesian treatment asks for a bit more up front (priors, a likelihood, a sampler) and gives back a full distribution over every coefficient, and over every prediction.
#
# The two chapters in this journal cover the two response types one meets most often:
#
# 1. A continuous response, modelled with a Gaussian likelihood and the identity link (Chapter 01, stack loss).
# 2. A binary response, modelled with a Bernoulli likelihood and the logistic link (Chapter 02, Palmer penguins).
#
# Everything else (the sampler, the automatic differentiation, the plotting) is delegated to [Pyro](http://pyro.ai), `PyTorch`, `plotly` and `seaborn`. The code in this book is the glue in between.

# ### The workflow
#
# Every chapter follows the same recipe, loosely based on the [Bayesian Workflow](https://arxiv.org/abs/2011.01808) of Gelman et al:
#
# 1. Load and clean tabular data; rows with missing values are dropped or imputed.
# 2. Standardize numeric covariates, $z = (x - \bar{x})/s_x$, so that one prior scale fits every coefficient.
# 3. Declare the unknowns with prior distributions.
# 4. Form the linear predictor $\eta = \beta_0 + \sum_k \beta_k x_k$.
# 5. Map $\eta$ through a link function: identity for a Gaussian response, logistic for a Bernoulli response.
# 6. Attach the likelihood of the observed response.
# 7. Draw posterior samples with NUTS, running several independent chains and discarding the warm-up.
# 8. Check convergence: trace plots, auto-correlation and the Gelman-Rubin potential scale reduction factor.
# 9. Summarize the posterior (means, credible intervals) and compare simulated replicates against the observed data through a test statistic, both before (prior predictive) and after (posterior predictive) fitting.
#
# The helpers for steps 2 to 9 live in the `base` class of [regression_book/workflow.py](../regression_book/workflow.py); each chapter extends that class with its own data loading, model and simulation code.

# ### How to read
#
# The notebooks are meant to be executed, not just read. Sampling takes a few minutes per model on a laptop. If you'd rather skip it, every chapter saves the sampled chains as a `csv` that can be reloaded with the upload buttons.
#
# <Br>
# [1] Gelman et al, Bayesian workflow
# https://arxiv.org/abs/2011.01808
# <Br>
# [2] Gabry et al, Visualization in Bayesian workflow
# https://arxiv.org/abs/1709.01449
# <Br>
# [3] Hoffman, M.D., Gelman, A., The No-U-Turn Sampler
# https://arxiv.org/abs/1111.4246
# <Br>
