"""
Recipe management core.

This package contains:
- models: Recipe, Ingredient and User entities
- stores: Recipe store contract and its relational / document backends
- live: Push-stream primitives (live queries, subscriptions, shared state)
- views: Pure derivations over recipe lists (filtering, categories, favorites)
- state: Reactive recipe state container
- auth: Auth provider contract and local implementation
- factory: Composition root wiring configuration, stores and auth together
"""
