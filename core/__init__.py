"""core/ -- Configuration and logging kernel. Imports nothing from api/ or auth/."""
