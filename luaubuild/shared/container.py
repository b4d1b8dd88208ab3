# luaubuild/shared/container.py
from dependency_injector import containers, providers

from luaubuild.adapters.toolchains import EmscriptenToolchain, NativeToolchain
from luaubuild.core.graph.lazy_path import Dependency


class Container(containers.DeclarativeContainer):
    """
    Dependency Injection Container.
    Selects the one toolchain used for the whole invocation from the
    resolved platform ('native' or 'emscripten').
    """

    config = providers.Configuration()

    emsdk = providers.Singleton(
        Dependency,
        name="emsdk",
        root=config.emsdk_dir,
    )

    toolchain = providers.Selector(
        config.platform,
        native=providers.Singleton(
            NativeToolchain,
            cxx=config.cxx,
            ar=config.ar,
            target_triple=config.triple,
            cc=config.cc,
        ),
        emscripten=providers.Singleton(
            EmscriptenToolchain,
            emsdk=emsdk,
        ),
    )
