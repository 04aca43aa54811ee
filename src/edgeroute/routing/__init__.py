"""Routing — route classification, specificity ordering, and request matching.

Routes are classified and sorted once at build time; the router walks
the stored order at request time without re-sorting.
"""
