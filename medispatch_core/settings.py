"""
Django settings for the MediSpatch project.
Medical-logistics delivery dispatch backend

Configuration covers:
- Delivery requests, tracking and drivers (REST + WebSocket)
- Redis/Celery (live-tracking simulation ticks)
- JWT Authentication (API)
- Slack webhook and payment-provider integration
"""

from pathlib import Path
from decouple import config, Csv
from datetime import timedelta

# ===========================================
# BASE CONFIGURATION
# ===========================================
BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = config('SECRET_KEY', default='dev-secret-key-change-in-production')
DEBUG = config('DEBUG', default=True, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1,0.0.0.0,testserver', cast=Csv())

# Public base URL used in tracking links and notification buttons
BASE_URL = config('BASE_URL', default='http://localhost:8000')

# ===========================================
# APPLICATION DEFINITION
# ===========================================
INSTALLED_APPS = [
    # Django Core
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',

    # Daphne MUST be before staticfiles
    'daphne',  # ASGI server for WebSocket support
    'channels',  # Django Channels for real-time tracking

    'django.contrib.staticfiles',

    # Third Party
    'rest_framework',
    'rest_framework_simplejwt',
    'corsheaders',
    'django_filters',
    'drf_spectacular',

    # MediSpatch Apps
    'core.apps.CoreConfig',
    'logistics.apps.LogisticsConfig',
    'notifications.apps.NotificationsConfig',
    'payments.apps.PaymentsConfig',
]


MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'medispatch_core.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'medispatch_core.wsgi.application'

# ===========================================
# DATABASE
# ===========================================
# SQLite for local development and tests, PostgreSQL in production
# (DB_ENGINE=django.db.backends.postgresql).
DB_ENGINE = config('DB_ENGINE', default='django.db.backends.sqlite3')

if DB_ENGINE == 'django.db.backends.sqlite3':
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': config('DB_NAME', default=str(BASE_DIR / 'db.sqlite3')),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': config('DB_NAME', default='medispatch_db'),
            'USER': config('DB_USER', default='medispatch_user'),
            'PASSWORD': config('DB_PASSWORD', default='medispatch_secret'),
            'HOST': config('DB_HOST', default='db'),
            'PORT': config('DB_PORT', default='5432'),
        }
    }

# ===========================================
# CUSTOM USER MODEL
# ===========================================
AUTH_USER_MODEL = 'core.User'

# ===========================================
# PASSWORD VALIDATION
# ===========================================
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

# ===========================================
# INTERNATIONALIZATION
# ===========================================
LANGUAGE_CODE = 'en-us'
TIME_ZONE = config('TIME_ZONE', default='America/Chicago')
USE_I18N = True
USE_TZ = True

# ===========================================
# STATIC & MEDIA FILES
# ===========================================
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
MEDIA_URL = 'media/'
MEDIA_ROOT = BASE_DIR / 'media'

# ===========================================
# DEFAULT PRIMARY KEY
# ===========================================
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# ===========================================
# REDIS (cache + channel layer)
# ===========================================
USE_REDIS = config('USE_REDIS', default=False, cast=bool)
REDIS_URL = config('REDIS_URL', default='redis://redis:6379/0')

if USE_REDIS:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.redis.RedisCache',
            'LOCATION': REDIS_URL,
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'medispatch',
        }
    }

# ===========================================
# DJANGO CHANNELS (WebSocket Real-time)
# ===========================================
ASGI_APPLICATION = 'medispatch_core.asgi.application'

if USE_REDIS:
    CHANNEL_LAYERS = {
        'default': {
            'BACKEND': 'channels_redis.core.RedisChannelLayer',
            'CONFIG': {
                'hosts': [config('CHANNEL_REDIS_URL', default='redis://redis:6379/1')],
                'capacity': 1500,
                'expiry': 10,
            },
        },
    }
else:
    CHANNEL_LAYERS = {
        'default': {
            'BACKEND': 'channels.layers.InMemoryChannelLayer',
        },
    }

# ===========================================
# DJANGO REST FRAMEWORK
# ===========================================
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
        'rest_framework.filters.SearchFilter',
        'rest_framework.filters.OrderingFilter',
    ],
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 20,
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
}

# ===========================================
# API DOCUMENTATION (drf-spectacular)
# ===========================================
SPECTACULAR_SETTINGS = {
    'TITLE': 'MediSpatch API',
    'DESCRIPTION': 'Medical courier dispatch, tracking and driver portal API',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
}

# ===========================================
# JWT CONFIGURATION
# ===========================================
SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=12),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'ROTATE_REFRESH_TOKENS': True,
    'AUTH_HEADER_TYPES': ('Bearer',),
}

# ===========================================
# CORS (Cross-Origin Resource Sharing)
# ===========================================
CORS_ALLOWED_ORIGINS = config(
    'CORS_ALLOWED_ORIGINS',
    default='http://localhost:8080,http://localhost:5050,http://localhost:3000',
    cast=Csv()
)
CORS_ALLOW_CREDENTIALS = True

# ===========================================
# CELERY CONFIGURATION
# ===========================================
CELERY_BROKER_URL = config('CELERY_BROKER_URL', default='redis://redis:6379/0')
CELERY_RESULT_BACKEND = config('CELERY_RESULT_BACKEND', default='redis://redis:6379/0')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE

# Live-tracking simulation: the beat tick is the finest granularity,
# each delivery advances when its own speed interval has elapsed.
SIMULATION_TICK_SECONDS = config('SIMULATION_TICK_SECONDS', default=1.0, cast=float)

CELERY_BEAT_SCHEDULE = {
    'simulate-live-deliveries': {
        'task': 'logistics.tasks.simulate_live_deliveries',
        'schedule': timedelta(seconds=SIMULATION_TICK_SECONDS),
    },
}

# ===========================================
# SLACK WEBHOOK (chat notifications)
# ===========================================
SLACK_WEBHOOK_URL = config('SLACK_WEBHOOK_URL', default='')
SLACK_CHANNEL_ID = config('SLACK_CHANNEL_ID', default='')
SLACK_NOTIFICATIONS_ENABLED = config('SLACK_NOTIFICATIONS_ENABLED', default=True, cast=bool)
SLACK_TIMEOUT_SECONDS = config('SLACK_TIMEOUT_SECONDS', default=10, cast=int)

# ===========================================
# STRIPE (payment intents)
# ===========================================
STRIPE_API_URL = config('STRIPE_API_URL', default='https://api.stripe.com/v1')
STRIPE_SECRET_KEY = config('STRIPE_SECRET_KEY', default='')
STRIPE_WEBHOOK_SECRET = config('STRIPE_WEBHOOK_SECRET', default='')
STRIPE_WEBHOOK_TOLERANCE_SECONDS = config('STRIPE_WEBHOOK_TOLERANCE_SECONDS', default=300, cast=int)
STRIPE_TIMEOUT_SECONDS = config('STRIPE_TIMEOUT_SECONDS', default=30, cast=int)

# ===========================================
# TWO-FACTOR AUTHENTICATION
# ===========================================
TWO_FACTOR_ISSUER = config('TWO_FACTOR_ISSUER', default='MediSpatch')

# ===========================================
# PROOF OF DELIVERY STORAGE
# ===========================================
PROOF_OF_DELIVERY_BUCKET = config('PROOF_OF_DELIVERY_BUCKET', default='proof-of-delivery')
PROOF_PHOTO_MAX_BYTES = config('PROOF_PHOTO_MAX_BYTES', default=10 * 1024 * 1024, cast=int)

# ===========================================
# BUSINESS RULES - PRICING ENGINE
# ===========================================
PRICING_BASE_FARE = config('PRICING_BASE_FARE', default=15, cast=int)                 # USD
PRICING_COST_PER_MILE = config('PRICING_COST_PER_MILE', default=2, cast=float)        # USD/mile
PRICING_URGENT_MULTIPLIER = config('PRICING_URGENT_MULTIPLIER', default=1.5, cast=float)
PRICING_TEMPERATURE_MULTIPLIER = config('PRICING_TEMPERATURE_MULTIPLIER', default=1.3, cast=float)

# ===========================================
# LOGGING CONFIGURATION
# ===========================================
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': config('DJANGO_LOG_LEVEL', default='INFO'),
            'propagate': False,
        },
        'celery': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
