"""
Django settings for Storefront Checkout project.

Production & Development настройки с переключением через DEBUG.
"""
import os
from pathlib import Path
from datetime import timedelta
import dj_database_url
from dotenv import load_dotenv

# Загрузка .env файла
load_dotenv()

# Build paths
BASE_DIR = Path(__file__).resolve().parent.parent

# =============================================================================
# CORE SETTINGS
# =============================================================================

SECRET_KEY = os.environ.get(
    'SECRET_KEY',
    'django-insecure-change-me-in-production-use-real-key'
)

DEBUG = os.environ.get('DEBUG', 'False').lower() in ('true', '1', 'yes')

# =============================================================================
# ALLOWED HOSTS & CSRF
# =============================================================================

ALLOWED_HOSTS = [
    host.strip()
    for host in os.environ.get('ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')
    if host.strip()
]

# Для Docker внутренних запросов
if os.environ.get('DOCKER_CONTAINER'):
    ALLOWED_HOSTS += ['web', 'django']

CSRF_TRUSTED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get('CSRF_TRUSTED_ORIGINS', '').split(',')
    if origin.strip()
]

# =============================================================================
# APPLICATION DEFINITION
# =============================================================================

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third party
    'rest_framework',
    'rest_framework_simplejwt',
    'django_filters',
    'corsheaders',
    'drf_spectacular',
    'django_celery_beat',

    # Local apps
    'catalog',
    'security',  # до orders: orders.ready регистрирует очистку в sweeper-е security
    'orders',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',  # Статика в production
    'corsheaders.middleware.CorsMiddleware',  # CORS должен быть перед CommonMiddleware
    # Sliding-window лимит для всего /api/ (профиль api)
    'security.middleware.RateLimitMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'
WSGI_APPLICATION = 'config.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# =============================================================================
# DATABASE
# =============================================================================

DATABASE_URL = os.environ.get('DATABASE_URL')

if DATABASE_URL:
    DATABASES = {
        'default': dj_database_url.parse(DATABASE_URL, conn_max_age=600)
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

# =============================================================================
# REDIS & CACHE
# =============================================================================

REDIS_HOST = os.environ.get('REDIS_HOST', 'redis')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_URL = f'redis://{REDIS_HOST}:{REDIS_PORT}'

CACHES = {
    'default': {
        'BACKEND': 'django_redis.cache.RedisCache',
        'LOCATION': f'{REDIS_URL}/1',
        'OPTIONS': {
            'CLIENT_CLASS': 'django_redis.client.DefaultClient',
        },
        'KEY_PREFIX': 'checkout',
        'TIMEOUT': 300,
    }
}

# Session через Redis в production
if not DEBUG:
    SESSION_ENGINE = 'django.contrib.sessions.backends.cache'
    SESSION_CACHE_ALIAS = 'default'

# =============================================================================
# CELERY
# =============================================================================

CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', f'{REDIS_URL}/0')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', f'{REDIS_URL}/0')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = os.environ.get('TIME_ZONE', 'America/Chicago')
CELERY_ENABLE_UTC = True

# Celery Beat расписание
CELERY_BEAT_SCHEDULE = {
    'reconcile-recent-orders': {
        'task': 'orders.tasks.reconcile_recent_orders',
        'schedule': 3600,  # Каждый час
    },
    'purge-expired-checkout-sessions': {
        'task': 'orders.tasks.purge_expired_checkout_sessions',
        'schedule': 300,  # Каждые 5 минут
    },
}

# =============================================================================
# CORS SETTINGS
# =============================================================================

CORS_ALLOW_ALL_ORIGINS = False

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get('CORS_ALLOWED_ORIGINS', '').split(',')
    if origin.strip()
]

# Для локальной разработки
if DEBUG:
    CORS_ALLOWED_ORIGINS += [
        'http://localhost:3000',
        'http://127.0.0.1:3000',
        'http://localhost:5173',
        'http://127.0.0.1:5173',
    ]

CORS_ALLOW_CREDENTIALS = True

CORS_ALLOW_METHODS = [
    'GET',
    'OPTIONS',
    'POST',
]

CORS_ALLOW_HEADERS = [
    'accept',
    'accept-encoding',
    'authorization',
    'content-type',
    'origin',
    'user-agent',
    'x-csrftoken',
    'x-requested-with',
]

CORS_EXPOSE_HEADERS = [
    'retry-after',
    'x-ratelimit-remaining',
]

# =============================================================================
# SECURITY (Production)
# =============================================================================

if not DEBUG:
    # HTTPS
    SECURE_SSL_REDIRECT = os.environ.get('SECURE_SSL_REDIRECT', 'True').lower() in ('true', '1', 'yes')
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

    # Cookies
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    CSRF_COOKIE_HTTPONLY = True

    # HSTS
    SECURE_HSTS_SECONDS = 31536000  # 1 год
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True

    # Другие
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = 'DENY'

# =============================================================================
# REST FRAMEWORK
# =============================================================================

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 20,
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
        'rest_framework.filters.OrderingFilter',
    ],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    # Встроенные cache-throttle DRF заменены на security.ratelimit
    'DEFAULT_THROTTLE_CLASSES': [],
    'EXCEPTION_HANDLER': 'rest_framework.views.exception_handler',
    # Сколько прокси перед приложением; 0 = X-Forwarded-For не доверяем
    'NUM_PROXIES': int(os.environ.get('NUM_PROXIES', '0')),
}

# В production убираем Session auth
if DEBUG:
    REST_FRAMEWORK['DEFAULT_AUTHENTICATION_CLASSES'].append(
        'rest_framework.authentication.SessionAuthentication'
    )

# =============================================================================
# JWT SETTINGS
# =============================================================================

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=1),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=30),
    'ALGORITHM': 'HS256',
    'SIGNING_KEY': SECRET_KEY,
    'AUTH_HEADER_TYPES': ('Bearer',),
    'AUTH_HEADER_NAME': 'HTTP_AUTHORIZATION',
    'USER_ID_FIELD': 'id',
    'USER_ID_CLAIM': 'user_id',
}

# =============================================================================
# API DOCUMENTATION
# =============================================================================

SPECTACULAR_SETTINGS = {
    'TITLE': 'Storefront Checkout API',
    'DESCRIPTION': 'Серверная проверка цен заказа, checkout-токены и rate limiting',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
    'SCHEMA_PATH_PREFIX': '/api/',
}

# =============================================================================
# STATIC FILES
# =============================================================================

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
STATICFILES_DIRS = []

# WhiteNoise для статики
STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage',
    },
}

# =============================================================================
# PASSWORD VALIDATION
# =============================================================================

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator', 'OPTIONS': {'min_length': 8}},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

# =============================================================================
# INTERNATIONALIZATION
# =============================================================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('TIME_ZONE', 'America/Chicago')
USE_I18N = True
USE_TZ = True

# =============================================================================
# LOGGING
# =============================================================================

LOGS_DIR = BASE_DIR / 'logs'
LOGS_DIR.mkdir(parents=True, exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {asctime} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'level': 'DEBUG' if DEBUG else 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
        'file': {
            'level': 'WARNING',
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': LOGS_DIR / 'django.log',
            'maxBytes': 10485760,  # 10MB
            'backupCount': 5,
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console', 'file'] if not DEBUG else ['console'],
        'level': 'DEBUG' if DEBUG else 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'django.request': {
            'handlers': ['console', 'file'],
            'level': 'WARNING',
            'propagate': False,
        },
        'celery': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}

# =============================================================================
# BUSINESS SETTINGS: ЦЕНООБРАЗОВАНИЕ
# =============================================================================

# Все ставки и суммы задаются строками, в коде приводятся к Decimal
ORDER_PRICING = {
    'SERVICE_FEE_RATE': os.environ.get('SERVICE_FEE_RATE', '0.15'),
    # Ставка налога зависит от региона доставки
    'SALES_TAX_RATE': os.environ.get('SALES_TAX_RATE', '0.0975'),
    'DELIVERY_BASE_FEE': os.environ.get('DELIVERY_BASE_FEE', '5.99'),
    'DELIVERY_PER_MILE_FEE': os.environ.get('DELIVERY_PER_MILE_FEE', '1.50'),
    'DELIVERY_MAX_FEE': os.environ.get('DELIVERY_MAX_FEE', '15.00'),
    'FREE_DELIVERY_THRESHOLD': os.environ.get('FREE_DELIVERY_THRESHOLD', '150.00'),
    'DEFAULT_DELIVERY_DISTANCE_MILES': os.environ.get('DEFAULT_DELIVERY_DISTANCE_MILES', '5'),
    'RECONCILIATION_TOLERANCE': os.environ.get('RECONCILIATION_TOLERANCE', '0.02'),
}

CHECKOUT = {
    'CREDENTIAL_TTL_MINUTES': int(os.environ.get('CHECKOUT_CREDENTIAL_TTL_MINUTES', '30')),
    # memory - таблица в процессе, database - CheckoutSession (несколько воркеров)
    'CREDENTIAL_STORE': os.environ.get('CHECKOUT_CREDENTIAL_STORE', 'database'),
}

# =============================================================================
# BUSINESS SETTINGS: RATE LIMITING
# =============================================================================

RATE_LIMIT_PROFILES = {
    # PIN / логин: узкое окно, мало попыток, долгая блокировка
    'auth': {
        'window_seconds': 15 * 60,
        'max_attempts': 5,
        'block_seconds': 30 * 60,
    },
    # Общий API: широкий лимит, короткая блокировка
    'api': {
        'window_seconds': 60,
        'max_attempts': int(os.environ.get('API_RATE_LIMIT_MAX_ATTEMPTS', '100')),
        'block_seconds': 60,
    },
}

RATE_LIMIT_SWEEP_INTERVAL = 60  # секунд
RATE_LIMIT_SWEEPER_AUTOSTART = os.environ.get('RATE_LIMIT_SWEEPER_AUTOSTART', 'True').lower() in ('true', '1', 'yes')
RATE_LIMIT_MIDDLEWARE_PATHS = ['/api/']

# =============================================================================
# OTHER
# =============================================================================

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

DATA_UPLOAD_MAX_MEMORY_SIZE = 1048576  # 1MB, корзина не бывает больше
DATA_UPLOAD_MAX_NUMBER_FIELDS = 1000
