from tools.accounts import groups, health_score, net_worth  # noqa: F401
from tools.budget import aggregator, pay_period  # noqa: F401
from tools.currency import conversion  # noqa: F401
from tools.transactions import filters  # noqa: F401
