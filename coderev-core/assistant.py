"""
Code Assistant
Wires the orchestration core into the three things the editor asks for:
analyze a file, complete at the cursor, answer a chat message.

Every request shares one GenerationClient (so one rate limiter, one backoff
clock, one dispatcher queue) and one OfflineModeController.
"""
from analyzers import CodeContext, analysis_fallback, build_analysis_jobs
from config import Settings, settings as default_settings
from orchestration import (
    CancelToken,
    JobOrchestrator,
    OfflineModeController,
    OrchestrationReport,
    OrchestratorConfig,
    RateLimiter,
)
from services import (
    ChatContext,
    ChatMessage,
    ChatReply,
    ChatService,
    CompletionResult,
    CompletionService,
    GeminiEndpoint,
    GenerationClient,
)
from utils import get_logger

logger = get_logger(__name__)


class CodeAssistant:
    """Front door for analysis, completion and chat"""

    def __init__(
        self,
        client: GenerationClient,
        offline: OfflineModeController | None = None,
        config: OrchestratorConfig | None = None,
    ):
        self.client = client
        self.offline = offline or OfflineModeController()
        self.orchestrator = JobOrchestrator(
            self.offline,
            config=config,
            fallback_factory=analysis_fallback,
        )
        self.completions = CompletionService(client, self.offline)
        self.chat = ChatService(client, self.offline)

    @classmethod
    def from_settings(cls, settings: Settings = default_settings) -> "CodeAssistant":
        missing = settings.validate()
        if missing:
            raise ValueError(f"Missing required settings: {', '.join(missing)}")

        client = GenerationClient(
            endpoint=GeminiEndpoint(api_key=settings.GEMINI_API_KEY),
            model_name=settings.MODEL_NAME,
            temperature=settings.GEMINI_TEMPERATURE,
            max_output_tokens=settings.GEMINI_MAX_OUTPUT_TOKENS,
            rate_limiter=RateLimiter(),
        )
        logger.info(f"✅ Code assistant ready (model: {settings.MODEL_NAME})")
        return cls(client, config=OrchestratorConfig.from_settings(settings))

    def analyze(
        self,
        context: CodeContext,
        observer=None,
        cancel_token: CancelToken | None = None,
        config: OrchestratorConfig | None = None,
    ) -> OrchestrationReport:
        """Run every enabled analyzer against one file"""
        jobs = build_analysis_jobs(self.client)
        logger.info(f"🔍 Analyzing {context.file_path} ({context.language}, {context.line_count} lines)")
        return self.orchestrator.run(
            context,
            jobs,
            config=config,
            observer=observer,
            cancel_token=cancel_token,
        )

    def complete(self, code: str, cursor_position: int, language: str) -> CompletionResult:
        return self.completions.complete(code, cursor_position, language)

    def reply(self, messages: list[ChatMessage], context: ChatContext | None = None) -> ChatReply:
        return self.chat.reply(messages, context)

    def is_offline(self) -> bool:
        return self.offline.is_offline()

    def reset_offline_mode(self) -> None:
        self.offline.reset()
        self.client.backoff.reset()

    def close(self) -> None:
        self.client.close()


# Singleton instance
_assistant: CodeAssistant | None = None


def get_assistant() -> CodeAssistant:
    """Get or create the assistant singleton"""
    global _assistant
    if _assistant is None:
        _assistant = CodeAssistant.from_settings()
    return _assistant
