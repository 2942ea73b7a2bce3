"""
Mapping and derivation passes.

Modules:
    mappers: Provider points to canonical observations
    normalizer: FX/PPP comparison derivation over stored observations
"""
