import logging

from celery import Celery
from celery.signals import after_setup_logger, task_failure, task_retry

from core.config import settings

logger = logging.getLogger(__name__)

MAIL_QUEUE = settings.MAIL_QUEUE_NAME


# ============================================
# CREATE CELERY APP
# ============================================

celery_app = Celery(
    "subscription_mail_worker",
    broker=settings.REDIS_URL,
    include=["tasks.subscription_mail"],
)

celery_app.conf.update(
    # ===== BASIC CONFIGURATION =====
    timezone='UTC',
    enable_utc=True,

    # ===== TASK CONFIGURATION =====
    task_acks_late=True,  # A mail is only acknowledged once handed to SMTP
    task_reject_on_worker_lost=True,
    task_ignore_result=True,
    task_time_limit=settings.EMAIL_SEND_TIMEOUT_SECONDS * 4,
    task_soft_time_limit=settings.EMAIL_SEND_TIMEOUT_SECONDS * 2,

    # ===== WORKER CONFIGURATION =====
    worker_prefetch_multiplier=1,
    worker_log_format='[%(asctime)s: %(levelname)s/%(processName)s] %(message)s',
    worker_task_log_format='[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s',

    # ===== BROKER CONFIGURATION =====
    broker_connection_retry_on_startup=True,
    broker_connection_max_retries=10,
    broker_transport_options={
        'visibility_timeout': 3600,
        'socket_keepalive': True,
        'socket_connect_timeout': 5,
    },

    # ===== SERIALIZATION =====
    task_serializer='json',
    accept_content=['json'],

    # ===== QUEUE CONFIGURATION =====
    task_default_queue=MAIL_QUEUE,
    task_routes={
        'tasks.deliver_subscription_mail': {'queue': MAIL_QUEUE},
    },
)


# ============================================
# SIGNAL HANDLERS
# ============================================

@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, **extra):
    task_name = sender.name if sender else 'unknown'
    logger.error(f"Task failure: {task_name} [{task_id}] - {exception}")


@task_retry.connect
def task_retry_handler(sender=None, request=None, reason=None, **kwargs):
    task_name = sender.name if sender else 'unknown'
    logger.warning(f"Task retry: {task_name} - Reason: {reason}")


@after_setup_logger.connect
def setup_celery_logger(logger, *args, **kwargs):
    logger.setLevel(settings.LOG_LEVEL)
    logger.info(f"Celery logger configured, delivering on queue {MAIL_QUEUE!r}")
