"""Authorization engine: schema, default policy, resolver, stores, evaluator, FastAPI guards."""
