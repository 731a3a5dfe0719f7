"""Mutation controller: a lazy controller that is only ever triggered by hand."""

from .lazy import LazyApi


class MutationApi(LazyApi):
    """
    Same lifecycle as LazyApi. Nothing in the package calls fetch() on a
    mutation; re-rendering it through observe() only refreshes its options.
    """
