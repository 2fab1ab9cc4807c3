"""Privacy tweak catalog."""

from ..snapshot.models import ConfigValue, Coordinate
from ..tuning.catalog import Mutation, TweakCatalog, TweakDefinition

POLICIES = r"SOFTWARE\Policies\Microsoft\Windows"
CURRENT_VERSION = r"SOFTWARE\Microsoft\Windows\CurrentVersion"
CONTENT_DELIVERY = CURRENT_VERSION + r"\ContentDeliveryManager"


def _dword(root: str, path: str, name: str, value: int) -> Mutation:
    return Mutation(Coordinate(root, path, name), ConfigValue.int32(value))


TWEAKS = [
    TweakDefinition(
        "disable_telemetry", "Disable Telemetry",
        "Disables Windows diagnostic data collection (AllowTelemetry=0)", "telemetry",
        mutations=[_dword("HKLM", POLICIES + r"\DataCollection", "AllowTelemetry", 0)],
    ),
    TweakDefinition(
        "disable_activity_history", "Disable Activity History",
        "Prevents Windows from tracking and sending your activity history", "tracking",
        mutations=[
            _dword("HKLM", POLICIES + r"\System", "EnableActivityFeed", 0),
            _dword("HKLM", POLICIES + r"\System", "PublishUserActivities", 0),
        ],
    ),
    TweakDefinition(
        "disable_location", "Disable Location Tracking",
        "Denies app access to your device location", "tracking",
        mutations=[Mutation(
            Coordinate("HKCU", CURRENT_VERSION + r"\CapabilityAccessManager\ConsentStore\location", "Value"),
            ConfigValue.string("Deny"),
        )],
    ),
    TweakDefinition(
        "disable_advertising_id", "Disable Advertising ID",
        "Prevents apps from using your advertising ID for targeted ads", "ads",
        mutations=[_dword("HKCU", CURRENT_VERSION + r"\AdvertisingInfo", "Enabled", 0)],
    ),
    TweakDefinition(
        "disable_cortana", "Disable Cortana",
        "Disables Cortana assistant and its data collection", "cortana",
        mutations=[_dword("HKLM", POLICIES + r"\Windows Search", "AllowCortana", 0)],
    ),
    TweakDefinition(
        "disable_bing_search", "Disable Bing Search in Start Menu",
        "Removes Bing web search suggestions from the Start Menu search", "cortana",
        mutations=[_dword("HKCU", POLICIES + r"\Explorer", "DisableSearchBoxSuggestions", 1)],
    ),
    TweakDefinition(
        "disable_feedback", "Disable Feedback Requests",
        "Stops Windows from asking for feedback", "telemetry",
        mutations=[_dword("HKCU", r"SOFTWARE\Microsoft\Siuf\Rules", "NumberOfSIUFInPeriod", 0)],
    ),
    TweakDefinition(
        "disable_tailored_experiences", "Disable Tailored Experiences",
        "Prevents Microsoft from using diagnostic data for personalized tips and ads", "ads",
        mutations=[_dword("HKCU", CURRENT_VERSION + r"\Privacy",
                          "TailoredExperiencesWithDiagnosticDataEnabled", 0)],
    ),
    TweakDefinition(
        "disable_tips", "Disable Tips and Suggestions",
        "Disables Windows tips, suggestions, and recommended content", "ads",
        mutations=[
            _dword("HKCU", CONTENT_DELIVERY, "SubscribedContent-338389Enabled", 0),
            _dword("HKCU", CONTENT_DELIVERY, "SoftLandingEnabled", 0),
            _dword("HKCU", CONTENT_DELIVERY, "SystemPaneSuggestionsEnabled", 0),
        ],
    ),
    TweakDefinition(
        "disable_wifi_sense", "Disable Wi-Fi Sense",
        "Prevents automatic connection to suggested open hotspots and shared networks", "tracking",
        mutations=[_dword("HKLM", r"SOFTWARE\Microsoft\WcmSvc\wifinetworkmanager\config",
                          "AutoConnectAllowedOEM", 0)],
    ),
    TweakDefinition(
        "disable_error_reporting", "Disable Windows Error Reporting",
        "Stops Windows from sending error reports to Microsoft", "telemetry",
        mutations=[_dword("HKLM", r"SOFTWARE\Microsoft\Windows\Windows Error Reporting", "Disabled", 1)],
    ),
]


def build_catalog() -> TweakCatalog:
    return TweakCatalog("privacy", TWEAKS)
