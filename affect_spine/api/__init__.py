"""HTTP adapter over AffectService."""
