from .env import (
    AgentEnv as AgentEnv,
    AgentOptions as AgentOptions,
    Env as Env,
    EnvOverride as EnvOverride,
    ViewerEnv as ViewerEnv,
    ViewerOptions as ViewerOptions,
)
from .load_env import load_env as load_env
from .time_parser import TimeParser as TimeParser
