"""
Built-in node type catalog.

The subset of n8n node types the mapper knows how to convert. Call
register_builtin_node_types() while configuring a registry; nothing is
registered at import time.
"""

from typing import List

from .models import (
    CredentialDefinition,
    CredentialField,
    ImportDefinition,
    ImportKind,
    NodeCategory,
    NodeTypeDefinition,
    ParameterDefinition,
    ParamType,
)
from .registry import NodeRegistry

N8N_BASE = "n8n-nodes-base"

HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

# Version constraints shared with the generated project baseline
FASTAPI_VERSION = ">=0.110.0"
HTTPX_VERSION = ">=0.27.0"
APSCHEDULER_VERSION = ">=3.10.0"


def _base_import(category: NodeCategory) -> ImportDefinition:
    base_class = {
        NodeCategory.TRIGGER: "BaseTriggerNode",
        NodeCategory.ACTION: "BaseActionNode",
        NodeCategory.TRANSFORM: "BaseTransformNode",
    }[category]
    return ImportDefinition(module="nodes.base", kind=ImportKind.LOCAL, symbols=[base_class])


def _local_import(module: str, class_name: str) -> ImportDefinition:
    return ImportDefinition(module=f"nodes.{module}", kind=ImportKind.LOCAL, symbols=[class_name])


def _builtin(module: str, *symbols: str) -> ImportDefinition:
    return ImportDefinition(module=module, kind=ImportKind.BUILTIN, symbols=list(symbols))


def _options(name: str, values: List[str], default=None, required: bool = False) -> ParameterDefinition:
    return ParameterDefinition(
        name=name,
        type=ParamType.OPTIONS,
        options=values,
        default=default if default is not None else values[0],
        required=required,
    )


# Credential types shared by several nodes
HTTP_BASIC_AUTH = CredentialDefinition(
    name="httpBasicAuth",
    description="Username and password sent as HTTP basic authentication",
    fields=[
        CredentialField(name="user", description="Username for basic authentication"),
        CredentialField(name="password", sensitive=True, description="Password for basic authentication"),
    ],
)

HTTP_HEADER_AUTH = CredentialDefinition(
    name="httpHeaderAuth",
    description="A single authentication header",
    fields=[
        CredentialField(name="name", description="Header name"),
        CredentialField(name="value", sensitive=True, description="Header value"),
    ],
)

OAUTH2_API = CredentialDefinition(
    name="oAuth2Api",
    description="Generic OAuth2 client",
    fields=[
        CredentialField(name="clientId", description="OAuth2 Client ID"),
        CredentialField(name="clientSecret", sensitive=True, description="OAuth2 Client Secret"),
        CredentialField(name="accessToken", required=False, sensitive=True, description="OAuth2 Access Token"),
        CredentialField(name="refreshToken", required=False, sensitive=True, description="OAuth2 Refresh Token"),
    ],
)


def _trigger_types() -> List[NodeTypeDefinition]:
    return [
        NodeTypeDefinition(
            type=f"{N8N_BASE}.manualTrigger",
            display_name="Manual Trigger",
            category=NodeCategory.TRIGGER,
            description="Starts the workflow when run by hand",
            inputs=[],
            imports=[_base_import(NodeCategory.TRIGGER), _local_import("manual_trigger", "ManualTriggerNode")],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.webhook",
            display_name="Webhook",
            category=NodeCategory.TRIGGER,
            description="Starts the workflow when an HTTP request arrives",
            inputs=[],
            parameters=[
                ParameterDefinition(name="path", required=True, description="URL path the webhook listens on"),
                _options("httpMethod", HTTP_METHODS),
                _options("responseMode", ["onReceived", "lastNode", "responseNode"]),
                ParameterDefinition(name="responseCode", type=ParamType.NUMBER, default=200),
                ParameterDefinition(name="options", type=ParamType.OBJECT, default={}),
            ],
            credentials=[HTTP_BASIC_AUTH, HTTP_HEADER_AUTH],
            imports=[
                _base_import(NodeCategory.TRIGGER),
                _local_import("webhook", "WebhookNode"),
                ImportDefinition(module="fastapi", symbols=["APIRouter", "Request"], version=FASTAPI_VERSION),
            ],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.scheduleTrigger",
            display_name="Schedule Trigger",
            category=NodeCategory.TRIGGER,
            description="Starts the workflow on a schedule",
            inputs=[],
            parameters=[
                ParameterDefinition(name="rule", type=ParamType.OBJECT, required=True,
                                    description="Interval rules"),
            ],
            imports=[
                _base_import(NodeCategory.TRIGGER),
                _local_import("schedule_trigger", "ScheduleTriggerNode"),
                ImportDefinition(module="apscheduler.schedulers.asyncio", symbols=["AsyncIOScheduler"],
                                 package="APScheduler", version=APSCHEDULER_VERSION),
            ],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.cron",
            display_name="Cron",
            category=NodeCategory.TRIGGER,
            description="Starts the workflow at cron times",
            inputs=[],
            parameters=[
                ParameterDefinition(name="triggerTimes", type=ParamType.OBJECT, required=True),
            ],
            imports=[
                _base_import(NodeCategory.TRIGGER),
                _local_import("cron", "CronNode"),
                ImportDefinition(module="apscheduler.triggers.cron", symbols=["CronTrigger"],
                                 package="APScheduler", version=APSCHEDULER_VERSION),
            ],
        ),
    ]


def _action_types() -> List[NodeTypeDefinition]:
    return [
        NodeTypeDefinition(
            type=f"{N8N_BASE}.httpRequest",
            display_name="HTTP Request",
            category=NodeCategory.ACTION,
            description="Makes an HTTP request and returns the response",
            parameters=[
                ParameterDefinition(name="url", required=True, description="The URL to make the HTTP request to"),
                _options("method", HTTP_METHODS),
                _options("authentication", ["none", "genericCredentialType", "predefinedCredentialType"]),
                ParameterDefinition(name="sendQuery", type=ParamType.BOOLEAN, default=False),
                ParameterDefinition(name="queryParameters", type=ParamType.OBJECT),
                ParameterDefinition(name="sendHeaders", type=ParamType.BOOLEAN, default=False),
                ParameterDefinition(name="headers", type=ParamType.OBJECT,
                                    description="HTTP headers to send with the request"),
                ParameterDefinition(name="headerParameters", type=ParamType.OBJECT),
                ParameterDefinition(name="sendBody", type=ParamType.BOOLEAN, default=False),
                ParameterDefinition(name="bodyParameters", type=ParamType.OBJECT),
                ParameterDefinition(name="timeout", type=ParamType.NUMBER, default=10000,
                                    description="Request timeout in milliseconds"),
                ParameterDefinition(name="options", type=ParamType.OBJECT, default={}),
            ],
            credentials=[HTTP_BASIC_AUTH, HTTP_HEADER_AUTH, OAUTH2_API],
            imports=[
                _base_import(NodeCategory.ACTION),
                _local_import("http_request", "HttpRequestNode"),
                ImportDefinition(module="httpx", version=HTTPX_VERSION),
                _builtin("json"),
            ],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.slack",
            display_name="Slack",
            category=NodeCategory.ACTION,
            description="Posts and updates Slack messages",
            parameters=[
                _options("resource", ["message", "channel"]),
                _options("operation", ["post", "update", "delete"]),
                ParameterDefinition(name="channel", required=True),
                ParameterDefinition(name="text"),
                ParameterDefinition(name="otherOptions", type=ParamType.OBJECT, default={}),
            ],
            credentials=[
                CredentialDefinition(
                    name="slackApi",
                    required=True,
                    fields=[CredentialField(name="accessToken", sensitive=True, description="Bot user OAuth token")],
                ),
            ],
            imports=[
                _base_import(NodeCategory.ACTION),
                _local_import("slack", "SlackNode"),
                ImportDefinition(module="slack_sdk", symbols=["WebClient"], package="slack-sdk",
                                 version=">=3.27.0"),
            ],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.telegram",
            display_name="Telegram",
            category=NodeCategory.ACTION,
            description="Sends messages through the Telegram Bot API",
            parameters=[
                _options("operation", ["sendMessage", "sendPhoto", "sendDocument"]),
                ParameterDefinition(name="chatId", required=True),
                ParameterDefinition(name="text"),
                ParameterDefinition(name="additionalFields", type=ParamType.OBJECT, default={}),
            ],
            credentials=[
                CredentialDefinition(
                    name="telegramApi",
                    required=True,
                    fields=[CredentialField(name="accessToken", sensitive=True, description="Bot token")],
                ),
            ],
            imports=[
                _base_import(NodeCategory.ACTION),
                _local_import("telegram", "TelegramNode"),
                ImportDefinition(module="httpx", version=HTTPX_VERSION),
            ],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.postgres",
            display_name="Postgres",
            category=NodeCategory.ACTION,
            description="Runs queries against a PostgreSQL database",
            parameters=[
                _options("operation", ["executeQuery", "insert", "update", "delete"]),
                ParameterDefinition(name="query"),
                ParameterDefinition(name="schema", default="public"),
                ParameterDefinition(name="table"),
                ParameterDefinition(name="columns", type=ParamType.ARRAY),
            ],
            credentials=[
                CredentialDefinition(
                    name="postgres",
                    required=True,
                    fields=[
                        CredentialField(name="host"),
                        CredentialField(name="port", required=False),
                        CredentialField(name="database"),
                        CredentialField(name="user"),
                        CredentialField(name="password", sensitive=True),
                    ],
                ),
            ],
            imports=[
                _base_import(NodeCategory.ACTION),
                _local_import("postgres", "PostgresNode"),
                ImportDefinition(module="psycopg", version=">=3.1.0"),
            ],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.emailSend",
            display_name="Send Email",
            category=NodeCategory.ACTION,
            description="Sends an email over SMTP",
            parameters=[
                ParameterDefinition(name="fromEmail", required=True),
                ParameterDefinition(name="toEmail", required=True),
                ParameterDefinition(name="subject"),
                ParameterDefinition(name="text"),
                ParameterDefinition(name="html"),
            ],
            credentials=[
                CredentialDefinition(
                    name="smtp",
                    required=True,
                    fields=[
                        CredentialField(name="host"),
                        CredentialField(name="port", required=False),
                        CredentialField(name="user"),
                        CredentialField(name="password", sensitive=True),
                    ],
                ),
            ],
            imports=[
                _base_import(NodeCategory.ACTION),
                _local_import("email_send", "EmailSendNode"),
                _builtin("smtplib"),
                _builtin("email.message", "EmailMessage"),
            ],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.openAi",
            display_name="OpenAI",
            category=NodeCategory.ACTION,
            description="Calls the OpenAI API",
            parameters=[
                _options("resource", ["chat", "text", "image"]),
                ParameterDefinition(name="model", default="gpt-4o-mini"),
                ParameterDefinition(name="prompt", type=ParamType.OBJECT),
                ParameterDefinition(name="maxTokens", type=ParamType.NUMBER),
                ParameterDefinition(name="temperature", type=ParamType.NUMBER),
            ],
            credentials=[
                CredentialDefinition(
                    name="openAiApi",
                    required=True,
                    fields=[
                        CredentialField(name="apiKey", sensitive=True),
                        CredentialField(name="organizationId", required=False),
                    ],
                ),
            ],
            imports=[
                _base_import(NodeCategory.ACTION),
                _local_import("open_ai", "OpenAiNode"),
                ImportDefinition(module="openai", symbols=["OpenAI"], version=">=1.30.0"),
            ],
        ),
    ]


def _transform_types() -> List[NodeTypeDefinition]:
    return [
        NodeTypeDefinition(
            type=f"{N8N_BASE}.set",
            display_name="Set",
            category=NodeCategory.TRANSFORM,
            description="Sets or replaces fields on each item",
            parameters=[
                _options("mode", ["manual", "raw"]),
                ParameterDefinition(name="assignments", type=ParamType.OBJECT,
                                    description="Data assignments to set on the output"),
                ParameterDefinition(name="values", type=ParamType.OBJECT),
                ParameterDefinition(name="operations", type=ParamType.ARRAY),
                ParameterDefinition(name="includeOtherFields", type=ParamType.BOOLEAN, default=True),
                ParameterDefinition(name="options", type=ParamType.OBJECT, default={}),
            ],
            imports=[
                _base_import(NodeCategory.TRANSFORM),
                _local_import("set", "SetNode"),
                _builtin("copy", "deepcopy"),
            ],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.code",
            display_name="Code",
            category=NodeCategory.TRANSFORM,
            description="Runs custom code over the items",
            parameters=[
                _options("mode", ["runOnceForAllItems", "runOnceForEachItem"]),
                _options("language", ["javaScript", "python"]),
                ParameterDefinition(name="jsCode", description="JavaScript code to execute"),
                ParameterDefinition(name="pythonCode", description="Python code to execute"),
            ],
            imports=[
                _base_import(NodeCategory.TRANSFORM),
                _local_import("code", "CodeNode"),
                ImportDefinition(module="py_mini_racer", symbols=["MiniRacer"], package="mini-racer",
                                 version=">=0.12.0"),
            ],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.if",
            display_name="If",
            category=NodeCategory.TRANSFORM,
            description="Routes items to the true or false branch",
            parameters=[
                ParameterDefinition(name="conditions", type=ParamType.OBJECT, required=True),
                _options("combineOperation", ["all", "any"]),
            ],
            outputs=["true", "false"],
            imports=[
                _base_import(NodeCategory.TRANSFORM),
                _local_import("if_node", "IfNode"),
                _builtin("operator"),
            ],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.switch",
            display_name="Switch",
            category=NodeCategory.TRANSFORM,
            description="Routes items to one of several outputs",
            parameters=[
                _options("mode", ["rules", "expression"]),
                ParameterDefinition(name="rules", type=ParamType.OBJECT),
                ParameterDefinition(name="fallbackOutput", type=ParamType.NUMBER),
            ],
            imports=[
                _base_import(NodeCategory.TRANSFORM),
                _local_import("switch", "SwitchNode"),
                _builtin("operator"),
            ],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.merge",
            display_name="Merge",
            category=NodeCategory.TRANSFORM,
            description="Merges the items of two inputs",
            parameters=[
                _options("mode", ["append", "combine", "chooseBranch"]),
                ParameterDefinition(name="options", type=ParamType.OBJECT, default={}),
            ],
            inputs=["main", "main"],
            imports=[
                _base_import(NodeCategory.TRANSFORM),
                _local_import("merge", "MergeNode"),
                _builtin("itertools", "chain"),
            ],
        ),
        NodeTypeDefinition(
            type=f"{N8N_BASE}.noOp",
            display_name="No Operation",
            category=NodeCategory.TRANSFORM,
            description="Passes items through unchanged",
            imports=[_base_import(NodeCategory.TRANSFORM), _local_import("no_op", "NoOpNode")],
        ),
    ]


def builtin_node_types() -> List[NodeTypeDefinition]:
    """All built-in definitions, triggers first"""
    return _trigger_types() + _action_types() + _transform_types()


def register_builtin_node_types(registry: NodeRegistry, overwrite=None) -> int:
    """Install the built-in catalog into a registry"""
    return registry.register_many(builtin_node_types(), overwrite)
