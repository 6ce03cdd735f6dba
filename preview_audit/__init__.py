"""Preview server orchestration, render validation, audits and performance budgets."""
