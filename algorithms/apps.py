from django.apps import AppConfig


class AlgorithmsConfig(AppConfig):
    name = "algorithms"
    verbose_name = "Slotwise Availability Engine"

    def ready(self):
        """
        Fail fast on broken AVAILABILITY settings instead of on the first request
        """
        from .availability.conf import DEFAULTS, fallback_business_days, fallback_window, get_setting

        for name in DEFAULTS:
            get_setting(name)
        fallback_window()
        fallback_business_days()
