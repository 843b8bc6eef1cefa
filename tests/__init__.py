"""
apop test suite.

Model likelihoods and gradients, the boundary guard, the estimation driver,
model comparison, configuration and the linear algebra helpers.
"""
