"""Top-level package for the Household Finance Dashboard.

The engine modules are importable without a running Streamlit server:

* ``models`` - domain records and input validation
* ``aggregation`` - month-scoped totals, budgets, goals and portfolio series
* ``recurrence`` - expansion of recurring transactions and month reconciliation
* ``reports`` - weekly advice payload, prompt and generation flow
* ``db`` - SQLite record store
* ``services`` - validated write operations on top of the store

To run the dashboard from the command line you can execute:

```bash
streamlit run household_dashboard/Home.py
```
"""

from . import aggregation  # noqa: F401  # re-exported for convenience
from . import models  # noqa: F401  # re-exported for convenience
from . import recurrence  # noqa: F401  # re-exported for convenience
from . import reports  # noqa: F401  # re-exported for convenience

__all__ = ["aggregation", "models", "recurrence", "reports"]
