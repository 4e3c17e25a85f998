"""
Platform settings backed by the key/value ``Settings`` table.
"""
from flask import current_app

from extensions import db
from models.settings import Settings
from services.exceptions import ValidationError
from utils.validation import require_text


AUTO_APPROVE_KEY = 'expenses.auto_approve'
PLATFORM_NAME_KEY = 'platform.name'
PROGRESS_FREQUENCY_KEY = 'progress.update_frequency'

PROGRESS_FREQUENCIES = ('WEEKLY', 'BIWEEKLY', 'MONTHLY')

DEFAULTS = {
    AUTO_APPROVE_KEY: False,
    PLATFORM_NAME_KEY: 'Incubator Finance',
    PROGRESS_FREQUENCY_KEY: 'WEEKLY',
}


class SettingsService:

    @staticmethod
    def get_auto_approve_expenses():
        """Consulted once, at expense submission time."""
        return bool(Settings.get_value(AUTO_APPROVE_KEY, DEFAULTS[AUTO_APPROVE_KEY]))

    @staticmethod
    def get_settings():
        return {
            'auto_approve_expenses': SettingsService.get_auto_approve_expenses(),
            'platform_name': Settings.get_value(PLATFORM_NAME_KEY, DEFAULTS[PLATFORM_NAME_KEY]),
            'progress_update_frequency': Settings.get_value(
                PROGRESS_FREQUENCY_KEY, DEFAULTS[PROGRESS_FREQUENCY_KEY]
            ),
        }

    @staticmethod
    def update_settings(auto_approve_expenses=None, platform_name=None, progress_update_frequency=None):
        if platform_name is not None:
            platform_name = require_text(platform_name, 'platform_name', max_length=100)
        if progress_update_frequency is not None:
            progress_update_frequency = str(progress_update_frequency).upper()
            if progress_update_frequency not in PROGRESS_FREQUENCIES:
                raise ValidationError(
                    f'progress_update_frequency must be one of {", ".join(PROGRESS_FREQUENCIES)}',
                    field='progress_update_frequency',
                )

        try:
            if auto_approve_expenses is not None:
                Settings.set_value(
                    AUTO_APPROVE_KEY, bool(auto_approve_expenses),
                    description='Approve new expenses immediately on submission',
                )
            if platform_name is not None:
                Settings.set_value(PLATFORM_NAME_KEY, platform_name, description='Platform display name')
            if progress_update_frequency is not None:
                Settings.set_value(
                    PROGRESS_FREQUENCY_KEY, progress_update_frequency,
                    description='How often startups report progress',
                )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info('Platform settings updated')
        return SettingsService.get_settings()
