"""Notifications module manifest: tool definitions."""

from shared.schemas.tools import ModuleManifest, ToolDefinition, ToolParameter

_TYPE_PARAM = ToolParameter(
    name="type",
    type="string",
    description="Notification type: 'ex_quiz' (or 'quiz') / 'streak_celebration'",
    enum=["ex_quiz", "quiz", "streak_celebration"],
)

MANIFEST = ModuleManifest(
    module_name="notifications",
    description=(
        "Schedule local quiz and streak-celebration notifications, route "
        "notification taps, and decide when to show the streak celebration."
    ),
    tools=[
        ToolDefinition(
            name="notifications.app_foreground",
            description=(
                "Call whenever the app becomes active. Reschedules every enabled "
                "notification type and returns a celebration to show, if any."
            ),
            parameters=[
                ToolParameter(
                    name="current_streak",
                    type="integer",
                    description="Current no-contact streak in days",
                ),
                ToolParameter(
                    name="onboarding_completed",
                    type="boolean",
                    description="Whether onboarding has finished. Default: true",
                    required=False,
                ),
                ToolParameter(
                    name="display_name",
                    type="string",
                    description="Name shown as the quiz notification title",
                    required=False,
                ),
                ToolParameter(
                    name="audience",
                    type="string",
                    description="Profile gender of the ex; selects quiz messages (male/female/other)",
                    required=False,
                ),
            ],
        ),
        ToolDefinition(
            name="notifications.schedule_quiz",
            description="Replace tomorrow evening's quiz notifications with a fresh random batch.",
            parameters=[
                ToolParameter(
                    name="audience",
                    type="string",
                    description="Profile gender of the ex (male/female/other)",
                    required=False,
                ),
                ToolParameter(
                    name="display_name",
                    type="string",
                    description="Notification title. Default: 'Ex'",
                    required=False,
                ),
            ],
        ),
        ToolDefinition(
            name="notifications.schedule_streak",
            description="Schedule tomorrow's streak celebration notification (fires just after midnight).",
            parameters=[
                ToolParameter(
                    name="current_streak",
                    type="integer",
                    description="Today's streak; the notification celebrates streak + 1",
                ),
            ],
        ),
        ToolDefinition(
            name="notifications.cancel_notifications",
            description="Cancel all pending notifications of one type. Other types are untouched.",
            parameters=[_TYPE_PARAM],
        ),
        ToolDefinition(
            name="notifications.cancel_all",
            description="Cancel every pending notification, including debug ones.",
            parameters=[],
        ),
        ToolDefinition(
            name="notifications.permission_status",
            description="Read the notification permission status without prompting.",
            parameters=[],
        ),
        ToolDefinition(
            name="notifications.request_permission",
            description=(
                "Show the notification permission prompt. Both notification "
                "features are enabled or disabled to match the answer."
            ),
            parameters=[],
        ),
        ToolDefinition(
            name="notifications.get_preferences",
            description="Return feature toggles and the last celebrated streak.",
            parameters=[],
        ),
        ToolDefinition(
            name="notifications.set_preferences",
            description="Toggle notification features. Disabling one cancels its pending notifications.",
            parameters=[
                ToolParameter(
                    name="quiz_enabled",
                    type="boolean",
                    description="Enable evening quiz notifications",
                    required=False,
                ),
                ToolParameter(
                    name="streak_celebration_enabled",
                    type="boolean",
                    description="Enable the midnight streak notification",
                    required=False,
                ),
            ],
        ),
        ToolDefinition(
            name="notifications.dismiss_celebration",
            description="Close the celebration screen and remember the streak it showed.",
            parameters=[],
        ),
        ToolDefinition(
            name="notifications.reset_streak_marker",
            description="Forget the last celebrated streak, e.g. after the streak restarts.",
            parameters=[],
        ),
        ToolDefinition(
            name="notifications.handle_tap",
            description=(
                "Queue a tapped notification. Once the app has launched it opens "
                "its quiz or forces the streak celebration."
            ),
            parameters=[
                ToolParameter(
                    name="identifier",
                    type="string",
                    description="Identifier of the tapped notification",
                    required=False,
                ),
                ToolParameter(
                    name="payload",
                    type="object",
                    description="Notification payload, e.g. {'type': 'ex_quiz', 'messageId': '...'}",
                ),
            ],
        ),
        ToolDefinition(
            name="notifications.get_celebration",
            description="Resolve the celebration text for a streak day.",
            parameters=[
                ToolParameter(name="day", type="integer", description="Streak day"),
            ],
        ),
        ToolDefinition(
            name="notifications.test_notification",
            description="Fire a debug notification of the given type a few seconds from now.",
            parameters=[
                _TYPE_PARAM,
                ToolParameter(
                    name="display_name",
                    type="string",
                    description="Quiz notification title",
                    required=False,
                ),
                ToolParameter(
                    name="streak",
                    type="integer",
                    description="Streak to celebrate for streak notifications. Default: 1",
                    required=False,
                ),
            ],
        ),
    ],
)
