"""
Gaming tweak catalog.

Only tweaks expressible as value, service or power-scheme changes are
listed; process killing, network stack resets and GPU vendor detection
live outside the snapshot engine.
"""

from ..snapshot.models import STOPPED, ConfigValue, Coordinate
from ..tuning.catalog import GameProfile, Mutation, ServiceChange, TweakCatalog, TweakDefinition

MOUSE = r"Control Panel\Mouse"
KEYBOARD = r"Control Panel\Keyboard"
GAME_CONFIG_STORE = r"System\GameConfigStore"
GAME_BAR = r"Software\Microsoft\GameBar"
TCPIP_INTERFACES = r"SYSTEM\CurrentControlSet\Services\Tcpip\Parameters\Interfaces"
CORE_PARKING = (
    r"SYSTEM\CurrentControlSet\Control\Power\PowerSettings"
    r"\54533251-82be-4824-96c1-47b60b740d00\0cc5b647-c1df-4637-891a-dec35c318583"
)

ULTIMATE_PERFORMANCE_SCHEME = "e9a42b02-d5df-448d-aa00-03f14749eb61"
HIGH_PERFORMANCE_SCHEME = "8c5e7fda-e8bf-4a96-9a85-a6e23a8c635c"


def _sz(root: str, path: str, name: str, value: str) -> Mutation:
    return Mutation(Coordinate(root, path, name), ConfigValue.string(value))


def _dword(root: str, path: str, name: str, value: int, fan_out: bool = False) -> Mutation:
    return Mutation(Coordinate(root, path, name), ConfigValue.int32(value), fan_out=fan_out)


TWEAKS = [
    # Mouse
    TweakDefinition(
        "mouse_raw_input", "Raw Mouse Input",
        "Enable raw input for precise mouse movement", "mouse",
        mutations=[_sz("HKCU", MOUSE, "MouseSpeed", "0")],
    ),
    TweakDefinition(
        "mouse_disable_acceleration", "Disable Mouse Acceleration",
        "Set MouseSpeed, Threshold1, Threshold2 to 0", "mouse",
        mutations=[
            _sz("HKCU", MOUSE, "MouseSpeed", "0"),
            _sz("HKCU", MOUSE, "MouseThreshold1", "0"),
            _sz("HKCU", MOUSE, "MouseThreshold2", "0"),
        ],
    ),
    TweakDefinition(
        "disable_smooth_scrolling", "Disable Smooth Scrolling",
        "Turn off smooth scrolling in system settings", "mouse",
        mutations=[_dword("HKCU", r"Control Panel\Desktop", "SmoothScroll", 0)],
    ),

    # Keyboard
    TweakDefinition(
        "keyboard_repeat_max", "Max Keyboard Repeat Rate",
        "Set KeyboardDelay=0 and KeyboardSpeed=31", "keyboard",
        mutations=[
            _sz("HKCU", KEYBOARD, "KeyboardDelay", "0"),
            _sz("HKCU", KEYBOARD, "KeyboardSpeed", "31"),
        ],
    ),
    TweakDefinition(
        "disable_sticky_keys", "Disable Sticky Keys",
        "Prevent sticky keys popup during gaming", "keyboard",
        mutations=[_sz("HKCU", r"Control Panel\Accessibility\StickyKeys", "Flags", "506")],
    ),
    TweakDefinition(
        "disable_filter_keys", "Disable Filter Keys",
        "Prevent filter keys popup during gaming", "keyboard",
        mutations=[_sz("HKCU", r"Control Panel\Accessibility\Keyboard Response", "Flags", "122")],
    ),
    TweakDefinition(
        "disable_toggle_keys", "Disable Toggle Keys",
        "Prevent toggle keys sound during gaming", "keyboard",
        mutations=[_sz("HKCU", r"Control Panel\Accessibility\ToggleKeys", "Flags", "58")],
    ),

    # Display / overlays
    TweakDefinition(
        "disable_game_dvr", "Disable Game DVR",
        "Turn off background game recording", "display",
        mutations=[_dword("HKCU", GAME_CONFIG_STORE, "GameDVR_Enabled", 0)],
    ),
    TweakDefinition(
        "disable_game_bar", "Disable Game Bar",
        "Turn off Xbox Game Bar overlay", "display",
        mutations=[
            _dword("HKCU", r"SOFTWARE\Microsoft\Windows\CurrentVersion\GameDVR", "AppCaptureEnabled", 0),
            _dword("HKCU", GAME_BAR, "UseNexusForGameBarEnabled", 0),
        ],
    ),
    TweakDefinition(
        "disable_game_mode", "Disable Game Mode",
        "Turn off Windows Game Mode", "display",
        mutations=[
            _dword("HKCU", GAME_BAR, "AllowAutoGameMode", 0),
            _dword("HKCU", GAME_BAR, "AutoGameModeEnabled", 0),
        ],
    ),
    TweakDefinition(
        "disable_fullscreen_optimize", "Disable Fullscreen Optimizations",
        "Prevent DWM fullscreen optimizations", "display",
        mutations=[
            _dword("HKCU", GAME_CONFIG_STORE, "GameDVR_FSEBehaviorMode", 2),
            _dword("HKCU", GAME_CONFIG_STORE, "GameDVR_HonorUserFSEBehaviorMode", 1),
            _dword("HKCU", GAME_CONFIG_STORE, "GameDVR_FSEBehavior", 2),
            _dword("HKCU", GAME_CONFIG_STORE, "GameDVR_DXGIHonorFSEWindowsCompatible", 1),
        ],
    ),

    # Power
    TweakDefinition(
        "ultimate_power_plan", "Ultimate Performance Power Plan",
        "Activate Windows Ultimate Performance plan", "power",
        power_plan=ULTIMATE_PERFORMANCE_SCHEME,
    ),
    TweakDefinition(
        "high_performance_plan", "High Performance Power Plan",
        "Activate the built-in High Performance plan", "power",
        power_plan=HIGH_PERFORMANCE_SCHEME,
    ),
    TweakDefinition(
        "core_parking_off", "Disable Core Parking",
        "Keep all CPU cores active", "power",
        mutations=[_dword("HKLM", CORE_PARKING, "ValueMax", 0)],
    ),

    # System
    TweakDefinition(
        "timer_resolution", "High Timer Resolution",
        "Request 0.5ms timer resolution", "system",
        mutations=[_dword("HKLM", r"SYSTEM\CurrentControlSet\Control\Session Manager\kernel",
                          "GlobalTimerResolutionRequests", 1)],
    ),
    TweakDefinition(
        "disable_sysmain", "Disable SysMain/SuperFetch",
        "Stop SysMain service temporarily", "system",
        services=[ServiceChange("SysMain", run_state=STOPPED)],
    ),
    TweakDefinition(
        "disable_indexing", "Disable Windows Search Indexing",
        "Stop WSearch service temporarily", "system",
        services=[ServiceChange("WSearch", run_state=STOPPED)],
    ),
    TweakDefinition(
        "cpu_priority_high", "High CPU Priority",
        "Set foreground process priority boost", "system",
        # 0x26: short, variable quanta with maximum foreground boost
        mutations=[_dword("HKLM", r"SYSTEM\CurrentControlSet\Control\PriorityControl",
                          "Win32PrioritySeparation", 0x26)],
    ),

    # Network
    TweakDefinition(
        "disable_nagle", "Disable Nagle Algorithm",
        "Turn off TCP packet batching for lower latency", "network",
        mutations=[
            _dword("HKLM", TCPIP_INTERFACES, "TcpAckFrequency", 1, fan_out=True),
            _dword("HKLM", TCPIP_INTERFACES, "TCPNoDelay", 1, fan_out=True),
        ],
    ),
]


PROFILES = [
    GameProfile(
        "competitive_fps", "Competitive FPS",
        "Maximum responsiveness for Valorant, CS2, Apex Legends. Focuses on input latency, "
        "raw mouse input, and network optimization.",
        [
            "mouse_raw_input", "mouse_disable_acceleration", "timer_resolution",
            "disable_game_dvr", "disable_game_bar", "disable_nagle",
            "disable_fullscreen_optimize", "keyboard_repeat_max", "disable_game_mode",
        ],
    ),
    GameProfile(
        "open_world", "Open World",
        "Maximum sustained performance for Cyberpunk 2077, GTA V, Elden Ring. Focuses on "
        "CPU unparking, power plan, and background services.",
        [
            "core_parking_off", "disable_indexing", "ultimate_power_plan", "disable_sysmain",
            "disable_game_dvr", "disable_game_bar", "disable_fullscreen_optimize",
        ],
    ),
    GameProfile(
        "moba_strategy", "MOBA / Strategy",
        "Network and input optimization for League of Legends, Dota 2, Starcraft. Focuses on "
        "low network latency and fast key repeat.",
        [
            "disable_nagle", "keyboard_repeat_max", "cpu_priority_high",
            "disable_game_dvr", "disable_game_bar",
        ],
    ),
    GameProfile(
        "racing_sim", "Racing / Sim",
        "Sustained high FPS for Forza Horizon, F1, Assetto Corsa. Focuses on power plan and "
        "display optimization.",
        [
            "disable_fullscreen_optimize", "ultimate_power_plan", "core_parking_off",
            "disable_game_dvr", "disable_game_bar", "disable_game_mode", "timer_resolution",
        ],
    ),
    GameProfile(
        "casual", "Casual / Indie",
        "Light optimization for Minecraft, Stardew Valley, indie titles.",
        ["disable_game_dvr", "disable_game_bar", "disable_sysmain"],
    ),
    GameProfile(
        "nuclear", "Nuclear Mode",
        "EVERYTHING maxed out. Every tweak applied. Use at your own risk.",
        [t.id for t in TWEAKS if t.id != "high_performance_plan"],
    ),
]


def build_catalog() -> TweakCatalog:
    return TweakCatalog("gaming", TWEAKS, PROFILES)
