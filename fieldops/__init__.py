"""FieldOps: invitation onboarding and policy-mediated identity resolution."""
