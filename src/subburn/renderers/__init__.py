from subburn.renderers.base import RENDERER_KINDS, EngineRun, FFmpegEngine, Renderer, create_renderer

__all__ = ["RENDERER_KINDS", "EngineRun", "FFmpegEngine", "Renderer", "create_renderer"]
