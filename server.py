import logging

from fastapi import FastAPI, Request
from slack_bolt.adapter.fastapi import SlackRequestHandler

from prompt_relay import config
from prompt_relay.event_adapter import EventAdapter
from prompt_relay.follow_up import load_follow_up_tools
from prompt_relay.job_service import QueueScheduler
from prompt_relay.service import build_prompt_service
from prompt_relay.slack_listeners import create_bolt_app, register_listeners

logger = logging.getLogger("prompt_relay.server")


def create_app(request_handler) -> FastAPI:
    """
    request_handler is anything with an async handle(request) -> Response,
    normally slack_bolt's SlackRequestHandler around the bolt App.
    """
    app = FastAPI()

    @app.post("/slack/events")
    async def slack_events(req: Request):
        return await request_handler.handle(req)

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok"}

    return app


def build_runtime() -> FastAPI:
    engine = config.get_db_engine()
    config.init_db(engine)
    session_factory = config.create_session_factory(engine)

    service = build_prompt_service(
        session_factory,
        tools=load_follow_up_tools(config.FOLLOW_UP_TOOLS_PATH),
        scheduler=QueueScheduler(session_factory, receiver_id=config.SCHEDULER_RECEIVER_ID),
    )

    bolt_app = create_bolt_app(config.SLACK_BOT_TOKEN, config.SLACK_SIGNING_SECRET)
    register_listeners(
        bolt_app,
        EventAdapter(service),
        service.follow_up_tool_names,
        enabled=config.AI_COPILOT_ENABLED,
    )
    return create_app(SlackRequestHandler(bolt_app))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(build_runtime(), host="0.0.0.0", port=8000)
