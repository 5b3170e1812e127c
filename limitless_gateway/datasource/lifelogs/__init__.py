"""
Limitless data source for Pendant lifelogs.
"""

from limitless_gateway.datasource.lifelogs.lifelogs import (
    Lifelog,
    LifelogContent,
    LifelogPage,
    LifelogSource,
)

__all__ = ["Lifelog", "LifelogContent", "LifelogPage", "LifelogSource"]
