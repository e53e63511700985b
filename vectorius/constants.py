import os

APP_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_DIR = os.environ.get('VECTORIUS_CONFIG_DIR', os.path.join(APP_DIR, 'config'))
CONFIG_FILE = os.environ.get('VECTORIUS_CONFIG', os.path.join(CONFIG_DIR, 'settings.yaml'))
ENV_FILE = '.env.local'
LOCAL_DB = 'sqlite:///' + os.path.join(CONFIG_DIR, 'vectorius.db')

BUILD_VERSION = '20251103_0912'

# Persona tokens
DEFAULT_TOKEN_TTL_HOURS = 24
DEFAULT_PERSONA_NAME = 'test-persona'
DEFAULT_PERSONA_ROLE = 'student'
PERSONA_TOKEN_BYTES = 32
PRODUCTION_ENV = 'production'

# Chat attachments
ATTACHMENT_BUCKET = 'chat-attachments'
MAX_ATTACHMENT_BYTES = 8 * 1024 * 1024  # 8 MiB
ALLOWED_MIME_TYPES = frozenset([
    'image/jpeg',
    'image/png',
    'image/heic',
    'image/heif',
])
DEFAULT_ATTACHMENT_EXTENSION = 'jpg'
SIGNED_URL_TTL_SECONDS = 600
DEFAULT_RETENTION_DAYS = 7
SWEEP_BATCH_SIZE = 100

# Extraction
EXTRACTION_KIND_EVENTS = 'calendar_events'
EXTRACTION_KIND_MILESTONES = 'study_milestones'
MODEL_MAX_TOKENS = 800
EVENTS_TEMPERATURE = 0.2
MILESTONES_TEMPERATURE = 0.3
DEFAULT_MODEL_API_VERSION = '2024-02-15-preview'

# Tutor chat
PROMPTS_DIR = os.path.join(APP_DIR, 'prompts')
CHAT_SYSTEM_PROMPT = 'grade8_system.md'
DEFAULT_CHAT_MODE = 'tutor'
CHAT_MODES = {
    'tutor': {'prompt': 'tutor_mode.md', 'temperature': 0.4},
    'checker': {'prompt': 'checker_mode.md', 'temperature': 0.2},
    'explainer': {'prompt': 'explainer_mode.md', 'temperature': 0.5},
}
CHAT_HISTORY_ROLES = ('user', 'assistant', 'system')

# Request timeouts (seconds) for the hosted services
PROVIDER_TIMEOUT = 15
MODEL_TIMEOUT = 60

DEFAULT_SETTINGS = {
    "app": {
        "environment": "development",
        "platform_environment": "",
        "base_url": "",
        "secret_key": "",
    },
    "database": {
        "url": "",
        "auto_create_tables": False,
    },
    "provider": {
        "url": "",
        "anon_key": "",
        "service_role_key": "",
    },
    "model": {
        "endpoint": "",
        "api_key": "",
        "deployment": "",
        "api_version": DEFAULT_MODEL_API_VERSION,
    },
    "attachments": {
        "retention_days": DEFAULT_RETENTION_DAYS,
        "batch_size": SWEEP_BATCH_SIZE,
    },
    "limits": {
        "default": ["300 per day", "100 per hour"],
    },
}

# Environment variables that override settings, as (section, key)
ENV_OVERRIDES = {
    'APP_ENV': ('app', 'environment'),
    'VERCEL_ENV': ('app', 'platform_environment'),
    'PUBLIC_BASE_URL': ('app', 'base_url'),
    'VERCEL_URL': ('app', 'base_url'),
    'SECRET_KEY': ('app', 'secret_key'),
    'DATABASE_URL': ('database', 'url'),
    'SUPABASE_URL': ('provider', 'url'),
    'NEXT_PUBLIC_SUPABASE_URL': ('provider', 'url'),
    'SUPABASE_ANON_KEY': ('provider', 'anon_key'),
    'NEXT_PUBLIC_SUPABASE_ANON_KEY': ('provider', 'anon_key'),
    'SUPABASE_SERVICE_ROLE_KEY': ('provider', 'service_role_key'),
    'AZURE_OPENAI_ENDPOINT': ('model', 'endpoint'),
    'AZURE_OPENAI_API_KEY': ('model', 'api_key'),
    'AZURE_OPENAI_DEPLOYMENT': ('model', 'deployment'),
    'AZURE_OPENAI_API_VERSION': ('model', 'api_version'),
}
