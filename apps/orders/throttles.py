from rest_framework.throttling import AnonRateThrottle


class PublicTrackingAnonThrottle(AnonRateThrottle):
    scope = "public_tracking"
