"""
Planner session state owned by the presentation layer.

The session keeps raw form values, the optional actual-data snapshot and the
cached advice text. Validation and the projection are recomputed from it on
demand; neither ever writes back into the session.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from projection import (
    PlanningInputs, FinancialSnapshot, ProjectionResult,
    apply_financial_snapshot, project
)
from validation import ValidationResult, validate, coerce_raw_inputs
from advice import (
    AdvisoryClient, AdviceRequest, AdviceResult, NoOpAdviceProvider,
    build_advice_prompt, create_advice_provider, create_offline_advice
)
from config_utils import (
    DEFAULT_ADVICE_TIMEOUT, get_default_planning_inputs, get_default_advisor_settings
)


ADVICE_PLACEHOLDER = (
    'Click "Get AI Insights" for personalized financial analysis of your plan.\n\n'
    'The AI will analyze:\n'
    '• Your net worth trajectory\n'
    '• Spending patterns and trends\n'
    '• Retirement readiness\n'
    '• Specific recommendations\n'
    '• Risk assessment'
)


@dataclass
class PlannerSession:
    """Everything the planner page remembers between interactions"""
    raw_inputs: Dict[str, Any] = field(default_factory=get_default_planning_inputs)
    snapshot: FinancialSnapshot = field(default_factory=FinancialSnapshot)
    advisor_settings: Dict[str, Any] = field(default_factory=get_default_advisor_settings)
    advice_text: str = ''
    advice_error_type: Optional[str] = None
    pending_advice: Optional[AdviceRequest] = None
    _client: Optional[AdvisoryClient] = field(default=None, repr=False)

    def update_field(self, name: str, raw_value: Any) -> ValidationResult:
        """Store a raw form value and return the fresh validation"""
        if name not in self.raw_inputs:
            raise KeyError(f"Unknown planning field: {name}")
        self.raw_inputs = {**self.raw_inputs, name: raw_value}
        return self.validation

    @property
    def inputs(self) -> PlanningInputs:
        """Inputs as typed, after raw-text coercion"""
        return coerce_raw_inputs(self.raw_inputs)

    @property
    def effective_inputs(self) -> PlanningInputs:
        """Inputs with actual financial data substituted in when enabled"""
        return apply_financial_snapshot(self.inputs, self.snapshot)

    @property
    def validation(self) -> ValidationResult:
        return validate(self.effective_inputs)

    @property
    def errors(self) -> Dict[str, str]:
        return self.validation.errors

    def compute_projection(self) -> Optional[ProjectionResult]:
        """Projection for the effective inputs, or None while any field is invalid"""
        inputs = self.effective_inputs
        if not validate(inputs).is_valid:
            return None
        return project(inputs)

    @property
    def is_loading_advice(self) -> bool:
        return self.pending_advice is not None and not self.pending_advice.done()

    @property
    def display_advice(self) -> str:
        return self.advice_text or ADVICE_PLACEHOLDER

    def _advisory_client(self) -> AdvisoryClient:
        if self._client is None:
            self._client = AdvisoryClient(NoOpAdviceProvider())
        return self._client

    def request_advice(self) -> AdviceRequest:
        """
        Start an advice request for the current plan.

        Only one request runs at a time; asking again while one is pending
        returns the pending request.
        """
        if self.is_loading_advice:
            return self.pending_advice

        inputs = self.effective_inputs
        result = self.compute_projection()
        offline_text = create_offline_advice(inputs, result) if result is not None else None

        provider = create_advice_provider(self.advisor_settings, offline_text=offline_text)
        timeout = float(self.advisor_settings.get('timeout') or DEFAULT_ADVICE_TIMEOUT)
        prompt = build_advice_prompt(inputs, self.snapshot, result)
        self.pending_advice = self._advisory_client().request_advice(prompt, provider=provider, timeout=timeout)
        return self.pending_advice

    def resolve_advice(self, timeout: Optional[float] = None) -> Optional[AdviceResult]:
        """Wait for the pending request and cache its text for display"""
        if self.pending_advice is None:
            return None

        result = self.pending_advice.result(timeout=timeout)
        self.pending_advice = None
        self.advice_text = result.display_text
        self.advice_error_type = result.error_type
        return result

    def cancel_advice(self) -> None:
        if self.pending_advice is not None:
            self.pending_advice.cancel()
            self.pending_advice = None

    def reset_inputs(self) -> None:
        self.raw_inputs = get_default_planning_inputs()
