"""
AI-generated retirement advice behind a pluggable provider interface.
Sends a text digest of the plan to a chat-completion endpoint, a local Ollama
server or Google Gemini. Failures come back as descriptive results and never
touch the numeric projection.
"""
import threading
from concurrent.futures import ThreadPoolExecutor, Future, CancelledError
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Optional, List

import requests

# Optional import - gracefully handle if not available
try:
    import google.generativeai as genai
    GEMINI_AVAILABLE = True
except ImportError:
    GEMINI_AVAILABLE = False

from projection import PlanningInputs, FinancialSnapshot, ProjectionResult
from config_utils import DEFAULT_ADVICE_TIMEOUT, ADVICE_PROMPT_WORD_LIMIT
from io_utils import format_currency, format_number


GROQ_CHAT_URL = 'https://api.groq.com/openai/v1/chat/completions'
NO_INSIGHTS_TEXT = 'No insights generated.'

# Extra time allowed on top of the HTTP timeout before a waiting caller gives up
RESULT_WAIT_MARGIN = 5.0


class APIError:
    """Common advice API error types and messages"""
    RATE_LIMIT = "rate_limit"
    INVALID_KEY = "invalid_key"
    QUOTA_EXCEEDED = "quota_exceeded"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    PARSING_ERROR = "parsing_error"
    UNAVAILABLE = "unavailable"
    CANCELLED = "cancelled"
    UNKNOWN_ERROR = "unknown_error"

    @staticmethod
    def get_user_message(error_type: str) -> str:
        """Get user-friendly error messages"""
        messages = {
            APIError.RATE_LIMIT: "🚦 **Rate limit exceeded.** Please wait a moment and try again.",
            APIError.INVALID_KEY: "🔑 **Invalid API key.** Please check the key configured for the advice service.",
            APIError.QUOTA_EXCEEDED: "📊 **Quota exceeded.** Try again later or upgrade your plan.",
            APIError.NETWORK_ERROR: "🌐 **Could not reach the AI service.** Check that it is running and reachable.",
            APIError.TIMEOUT: "⏱️ **The AI service took too long to answer.** Please try again.",
            APIError.HTTP_ERROR: "❌ **The AI service returned an error.**",
            APIError.PARSING_ERROR: "⚠️ **Unexpected response from the AI service.**",
            APIError.UNAVAILABLE: "🤖 **AI advice is not configured.** Your projection is unaffected.",
            APIError.CANCELLED: "🛑 **Advice request cancelled.**",
            APIError.UNKNOWN_ERROR: "❓ **Unexpected error occurred.**"
        }
        return messages.get(error_type, messages[APIError.UNKNOWN_ERROR])


class AdviceResponseError(ValueError):
    """Raised when an advice service answers with an unusable body"""


@dataclass(frozen=True)
class AdviceResult:
    """Outcome of one advice request: prose on success, a message on failure"""
    text: Optional[str] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error_type is None

    @property
    def display_text(self) -> str:
        return self.text if self.success else (self.error_message or APIError.get_user_message(self.error_type))

    @classmethod
    def failure(cls, error_type: str, detail: Optional[str] = None) -> 'AdviceResult':
        message = APIError.get_user_message(error_type)
        if detail:
            message = f"{message}\n\n{detail}"
        return cls(error_type=error_type, error_message=message)


def classify_error(error: Exception) -> str:
    """Classify advice call errors into user-friendly categories"""
    if isinstance(error, requests.Timeout):
        return APIError.TIMEOUT
    if isinstance(error, requests.ConnectionError):
        return APIError.NETWORK_ERROR
    if isinstance(error, requests.HTTPError):
        status = error.response.status_code if error.response is not None else None
        if status == 429:
            return APIError.RATE_LIMIT
        if status in (401, 403):
            return APIError.INVALID_KEY
        return APIError.HTTP_ERROR
    if isinstance(error, (ValueError, KeyError, IndexError, TypeError)):
        return APIError.PARSING_ERROR

    error_str = str(error).lower()

    # Provider SDKs (Gemini) report failures through message text
    if "rate limit" in error_str or "429" in error_str:
        return APIError.RATE_LIMIT
    elif "api key" in error_str or "401" in error_str or "403" in error_str:
        return APIError.INVALID_KEY
    elif "quota" in error_str:
        return APIError.QUOTA_EXCEEDED
    elif "timeout" in error_str or "deadline" in error_str:
        return APIError.TIMEOUT
    elif "network" in error_str or "connection" in error_str:
        return APIError.NETWORK_ERROR
    return APIError.UNKNOWN_ERROR


def _raise_for_status(response: requests.Response, service: str) -> None:
    """raise_for_status, carrying the service's own error text when it sends one"""
    if response.ok:
        return
    detail = ''
    try:
        body = response.json()
        if isinstance(body, dict):
            error = body.get('error')
            if isinstance(error, dict):
                error = error.get('message')
            detail = str(error or '')
    except ValueError:
        detail = response.text[:200]
    message = f"HTTP error! status: {response.status_code} from {service}"
    if detail:
        message = f"{message}: {detail}"
    raise requests.HTTPError(message, response=response)


class AdviceProvider:
    """Interface for services that turn a plan digest into advice prose"""

    name = 'provider'

    @property
    def is_available(self) -> bool:
        return True

    @property
    def setup_hint(self) -> str:
        return ''

    def generate(self, prompt: str) -> str:
        raise NotImplementedError


class ChatCompletionAdviceProvider(AdviceProvider):
    """OpenAI-compatible chat completions endpoint (Groq, vLLM, LM Studio, ...)"""

    name = 'chat_completion'

    def __init__(self,
                 api_key: Optional[str] = None,
                 model: str = 'llama-3.1-8b-instant',
                 api_url: str = GROQ_CHAT_URL,
                 timeout: float = DEFAULT_ADVICE_TIMEOUT):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.timeout = timeout

    @property
    def is_available(self) -> bool:
        return bool(self.api_url and self.model)

    @property
    def setup_hint(self) -> str:
        return (f"Please ensure:\n1. {self.api_url} is reachable\n"
                f"2. The API key is valid\n3. The model '{self.model}' is available")

    def generate(self, prompt: str) -> str:
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'

        payload = {
            'model': self.model,
            'messages': [{'role': 'user', 'content': prompt}],
        }
        response = requests.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)
        _raise_for_status(response, self.api_url)

        data = response.json()
        try:
            content = data['choices'][0]['message']['content']
        except (KeyError, IndexError, TypeError):
            raise AdviceResponseError("Response is missing choices[0].message.content")
        return content or NO_INSIGHTS_TEXT


class OllamaAdviceProvider(AdviceProvider):
    """Local Ollama server using the non-streaming generate endpoint"""

    name = 'ollama'

    def __init__(self,
                 base_url: str = 'http://localhost:11434',
                 model: str = 'llama2',
                 timeout: float = DEFAULT_ADVICE_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.timeout = timeout

    @property
    def setup_hint(self) -> str:
        return (f"Please ensure:\n1. Ollama is installed and running (ollama serve)\n"
                f"2. The model is available (try: ollama pull {self.model})\n"
                f"3. Ollama is accessible on {self.base_url}")

    def generate(self, prompt: str) -> str:
        payload = {'model': self.model, 'prompt': prompt, 'stream': False}
        response = requests.post(f"{self.base_url}/api/generate", json=payload, timeout=self.timeout)
        _raise_for_status(response, 'Ollama')

        data = response.json()
        if not isinstance(data, dict) or 'response' not in data:
            raise AdviceResponseError("Ollama response has no 'response' field")
        return data['response'] or NO_INSIGHTS_TEXT


class GeminiAdviceProvider(AdviceProvider):
    """Google Gemini via the google-generativeai SDK"""

    name = 'gemini'

    def __init__(self, api_key: Optional[str] = None, model_name: str = 'gemini-2.5-flash'):
        self.api_key = api_key
        self.model_name = model_name
        self.model = None

        if GEMINI_AVAILABLE and api_key:
            try:
                genai.configure(api_key=api_key)
                self.model = genai.GenerativeModel(model_name)
            except Exception as e:
                print(f"Warning: Failed to initialize Gemini model '{model_name}': {e}")

    @property
    def is_available(self) -> bool:
        return self.model is not None

    @property
    def setup_hint(self) -> str:
        if not GEMINI_AVAILABLE:
            return "To enable Gemini advice, install: pip install google-generativeai"
        return "Get an API key at https://aistudio.google.com/app/apikey"

    def generate(self, prompt: str) -> str:
        response = self.model.generate_content(prompt)
        if not response or not response.text:
            raise AdviceResponseError("Gemini returned an empty response")
        return response.text


class StubAdviceProvider(AdviceProvider):
    """Returns fixed text without any network call; records prompts it receives"""

    name = 'stub'

    def __init__(self, response: str = NO_INSIGHTS_TEXT):
        self.response = response
        self.prompts: List[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.response


class NoOpAdviceProvider(AdviceProvider):
    """Disabled advice: never available, never called"""

    name = 'none'

    @property
    def is_available(self) -> bool:
        return False

    def generate(self, prompt: str) -> str:
        raise RuntimeError("NoOpAdviceProvider cannot generate advice")


class AdviceRequest:
    """Single-shot handle for one advice call; resolves once, then caches"""

    def __init__(self, future: Future, wait_timeout: Optional[float] = None):
        self._future = future
        self._wait_timeout = wait_timeout
        self._cancelled = False
        self._result: Optional[AdviceResult] = None

    def done(self) -> bool:
        return self._result is not None or self._cancelled or self._future.done()

    def cancel(self) -> None:
        """Abandon the request; a call already on the wire finishes unobserved"""
        self._cancelled = True
        self._future.cancel()

    def result(self, timeout: Optional[float] = None) -> AdviceResult:
        if self._result is not None:
            return self._result

        if self._cancelled:
            self._result = AdviceResult.failure(APIError.CANCELLED)
            return self._result

        try:
            self._result = self._future.result(timeout=timeout if timeout is not None else self._wait_timeout)
        except CancelledError:
            self._result = AdviceResult.failure(APIError.CANCELLED)
        except FutureTimeoutError:
            self._result = AdviceResult.failure(APIError.TIMEOUT)
        return self._result


class AdvisoryClient:
    """
    Runs advice requests off the caller's thread, one at a time.

    While a request is outstanding, further requests are rejected by handing
    back the outstanding handle instead of starting a second call.
    """

    def __init__(self, provider: AdviceProvider, timeout: float = DEFAULT_ADVICE_TIMEOUT):
        self.provider = provider
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='advice')
        self._lock = threading.Lock()
        self._in_flight: Optional[AdviceRequest] = None

    @property
    def is_busy(self) -> bool:
        with self._lock:
            return self._in_flight is not None and not self._in_flight.done()

    def request_advice(self,
                       summary: str,
                       provider: Optional[AdviceProvider] = None,
                       timeout: Optional[float] = None) -> AdviceRequest:
        """
        Start an advice request for a pre-rendered plan summary.

        Args:
            summary: Prompt text built from the plan (see build_advice_prompt)
            provider: Provider for this request; defaults to the client's
            timeout: HTTP timeout used to size the wait; defaults to the client's

        Returns:
            AdviceRequest handle; the outstanding one if a request is in flight
        """
        provider = provider or self.provider
        timeout = timeout if timeout is not None else self.timeout

        with self._lock:
            if self._in_flight is not None and not self._in_flight.done():
                return self._in_flight

            # Provider is bound per request, never read back from the client
            future = self._executor.submit(self.get_advice, summary, provider)
            self._in_flight = AdviceRequest(future, wait_timeout=timeout + RESULT_WAIT_MARGIN)
            return self._in_flight

    def get_advice(self, summary: str, provider: Optional[AdviceProvider] = None) -> AdviceResult:
        """Call the provider synchronously; errors come back as failed results"""
        provider = provider or self.provider
        if not provider.is_available:
            return AdviceResult.failure(APIError.UNAVAILABLE, provider.setup_hint or None)

        try:
            text = provider.generate(summary)
        except Exception as e:
            error_type = classify_error(e)
            print(f"Error in retirement advice request ({error_type}): {e}")
            detail = f"Details: {e}"
            if provider.setup_hint:
                detail = f"{detail}\n\n{provider.setup_hint}"
            return AdviceResult.failure(error_type, detail)

        return AdviceResult(text=(text or '').strip() or NO_INSIGHTS_TEXT)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


def create_advice_provider(settings: dict, offline_text: Optional[str] = None) -> AdviceProvider:
    """
    Build the provider named in advisor settings (see config_utils).

    The 'offline' provider answers with offline_text when given, and is
    disabled otherwise.
    """
    provider = settings.get('provider', 'offline')
    timeout = float(settings.get('timeout') or DEFAULT_ADVICE_TIMEOUT)

    if provider == 'groq':
        return ChatCompletionAdviceProvider(
            api_key=settings.get('api_key') or None,
            model=settings.get('model') or 'llama-3.1-8b-instant',
            api_url=settings.get('base_url') or GROQ_CHAT_URL,
            timeout=timeout
        )
    elif provider == 'ollama':
        return OllamaAdviceProvider(
            base_url=settings.get('base_url') or 'http://localhost:11434',
            model=settings.get('model') or 'llama2',
            timeout=timeout
        )
    elif provider == 'gemini':
        return GeminiAdviceProvider(
            api_key=settings.get('api_key') or None,
            model_name=settings.get('model') or 'gemini-2.5-flash'
        )
    elif provider == 'offline' and offline_text:
        return StubAdviceProvider(offline_text)
    return NoOpAdviceProvider()


def build_advice_prompt(inputs: PlanningInputs,
                        snapshot: Optional[FinancialSnapshot] = None,
                        result: Optional[ProjectionResult] = None) -> str:
    """
    Render the plan as a prompt for the advice service.

    The output depends only on its arguments, so the same plan always yields
    the same prompt.

    Args:
        inputs: Effective planning inputs
        snapshot: Actual financial data, if the user supplied it
        result: Projection for the inputs, if they validated

    Returns:
        Prompt text
    """
    if snapshot is not None and snapshot.has_real_data:
        growth_sign = "-" if snapshot.net_worth_growth < 0 else "+"
        situation = f"""CURRENT FINANCIAL SITUATION:
- Net Worth: ${format_number(snapshot.net_worth)}
- Net Worth Growth (6 months): {growth_sign}${format_number(abs(snapshot.net_worth_growth))}
- {snapshot.reporting_year} Spending: ${format_number(snapshot.spending_this_year)}
- {snapshot.reporting_year - 1} Spending: ${format_number(snapshot.spending_last_year)}"""
    else:
        situation = f"""CURRENT FINANCIAL SITUATION:
- Net Worth: ${format_number(inputs.current_savings)} (current retirement savings)
- Spending History: not provided"""

    planning = f"""RETIREMENT PLANNING INPUTS:
- Current Age: {inputs.current_age}
- Retirement Age: {inputs.retirement_age}
- Current Savings: ${format_number(inputs.current_savings)}
- Monthly Contribution: ${format_number(inputs.monthly_contribution)}
- Expected Return: {format_number(inputs.expected_return)}%
- Inflation Rate: {format_number(inputs.inflation_rate)}%
- Expected Monthly Retirement Expenses: ${format_number(inputs.retirement_expenses)}
- Monthly Social Security: ${format_number(inputs.social_security)}
- Safe Withdrawal Rate: {format_number(inputs.safe_withdrawal_rate)}%"""

    projection = ""
    if result is not None:
        gap_label = "Surplus" if result.is_on_track else "Shortfall"
        projection = f"""

RETIREMENT PROJECTION:
- Years to Retirement: {result.years_to_retirement}
- Projected Savings at Retirement: {format_currency(result.total_retirement_savings)}
- Required Savings: {format_currency(result.required_savings)}
- {gap_label}: {format_currency(abs(result.surplus))}
- Sustainable Monthly Income at Retirement: {format_currency(result.monthly_income_at_retirement)}
- Inflation-Adjusted Monthly Expenses: {format_currency(result.inflation_adjusted_expenses)}"""

    return f"""You are a financial advisor AI analyzing retirement planning data. Based on the following information, provide personalized insights and recommendations:

{situation}

{planning}{projection}

Please provide:
1. Analysis of current financial trajectory
2. Specific recommendations for retirement planning
3. Assessment of spending patterns and their impact
4. Actionable steps to optimize retirement readiness
5. Risk factors and opportunities

Keep response concise but insightful (max {ADVICE_PROMPT_WORD_LIMIT} words)."""


def create_offline_advice(inputs: PlanningInputs, result: ProjectionResult) -> str:
    """Rule-based commentary used when no AI service is configured"""
    if result.is_on_track:
        assessment = (f"Your plan is on track with a projected surplus of "
                      f"{format_currency(result.surplus)} at age {inputs.retirement_age}.")
        steps = ["Keep contributions steady and rebalance annually",
                 "Stress-test the plan with a lower expected return"]
    else:
        assessment = (f"Your plan shows a shortfall of {format_currency(abs(result.surplus))} "
                      f"at age {inputs.retirement_age}.")
        steps = ["Increase monthly contributions or delay retirement",
                 "Review expected retirement expenses for savings"]

    risks = []
    if inputs.expected_return > 8:
        risks.append(f"An expected return of {format_number(inputs.expected_return)}% is optimistic")
    if inputs.safe_withdrawal_rate > 5:
        risks.append(f"A {format_number(inputs.safe_withdrawal_rate)}% withdrawal rate may deplete savings early")
    if result.years_to_retirement < 5:
        risks.append("Little time remains to recover from a market downturn")
    if not risks:
        risks.append("Inflation running above your assumption")

    lines = [assessment, "", "Next steps:"]
    lines += [f"- {step}" for step in steps]
    lines += ["", "Risks to watch:"]
    lines += [f"- {risk}" for risk in risks]
    return "\n".join(lines)
