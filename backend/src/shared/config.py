"""
Configuration module for Lambda handlers.
Loads all environment variables needed by the marketplace.
"""
import os


class Config:
    """Centralized configuration from environment variables."""

    # AWS Region
    AWS_REGION = os.environ.get('AWS_REGION', 'us-east-1')

    # DynamoDB Tables
    USERS_TABLE = os.environ.get('USERS_TABLE', 'projecthub-users')
    PROJECTS_TABLE = os.environ.get('PROJECTS_TABLE', 'projecthub-projects')
    BIDS_TABLE = os.environ.get('BIDS_TABLE', 'projecthub-bids')
    PURCHASES_TABLE = os.environ.get('PURCHASES_TABLE', 'projecthub-purchases')
    RATINGS_TABLE = os.environ.get('RATINGS_TABLE', 'projecthub-ratings')
    NOTIFICATIONS_TABLE = os.environ.get('NOTIFICATIONS_TABLE', 'projecthub-notifications')
    ALERTS_TABLE = os.environ.get('ALERTS_TABLE', 'projecthub-saved-alerts')

    # S3 Buckets
    MEDIA_BUCKET = os.environ.get('MEDIA_BUCKET', '')

    # SES
    SES_SENDER = os.environ.get('SES_SENDER', 'noreply@projecthub.app')
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', '')

    # Razorpay
    RAZORPAY_KEY_ID = os.environ.get('RAZORPAY_KEY_ID', '')
    RAZORPAY_KEY_SECRET = os.environ.get('RAZORPAY_KEY_SECRET', '')
    RAZORPAY_WEBHOOK_SECRET = os.environ.get('RAZORPAY_WEBHOOK_SECRET', '')
    PAYMENT_CURRENCY = os.environ.get('PAYMENT_CURRENCY', 'INR')
    CURRENCY_SYMBOL = os.environ.get('CURRENCY_SYMBOL', '₹')

    # Marketplace rules
    NOTIFICATION_FEED_LIMIT = int(os.environ.get('NOTIFICATION_FEED_LIMIT', '50'))
    MAX_SAVED_ALERTS = int(os.environ.get('MAX_SAVED_ALERTS', '10'))
    MIN_COVER_LETTER_LENGTH = int(os.environ.get('MIN_COVER_LETTER_LENGTH', '50'))


config = Config()
