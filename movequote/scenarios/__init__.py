from .catalogue import STANDARD_SCENARIOS, ScenarioDescriptor, get_scenario, load_catalogue  # noqa
from .multi_quote import MultiQuoteService, QuoteVariant  # noqa
from .recommendation import Recommendation, ScenarioRecommendationEngine  # noqa
from .summary import build_comparison  # noqa
from .output import contract_data, field_checklist, format_quote, legal_audit, quote_documents  # noqa
