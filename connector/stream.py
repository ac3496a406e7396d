"""
스트림 연결 관리

채널(공개/개인)마다 최대 하나의 WebSocket 연결을 유지하고,
끊기면 고정 지연 후 재연결하며 현재 캐시 상태로 구독을 다시 보냄.

상태 전이:
    DISCONNECTED -(connect)-> CONNECTING -(handshake ok)-> CONNECTED -(close)-> DISCONNECTED
    의도적 종료 시 CONNECTED -> CLOSING -> DISCONNECTED (재연결 없음)

수신 프레임은 거래소 코덱으로 해석한 뒤
호가 캐시 / 계좌 상태 / 이벤트 디스패처로 전달.
"""

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable

import websockets
from websockets.exceptions import ConnectionClosed

from adapters.interfaces import IStreamConnection, IVenueAdapter, StreamConnector
from adapters.models import BalanceUpdate, DepthUpdate, OrderEvent
from connector.account import AccountStateCache
from connector.depth_cache import DepthCache
from connector.dispatcher import EventDispatcher
from connector.symbol_cache import SymbolDirectoryCache
from core.constants import Defaults
from core.errors import ConfigurationError, DecodeError
from core.types import Channel, EventCategory, WebSocketState

logger = logging.getLogger(__name__)


# 콜백 타입 정의
UriProvider = Callable[[], Awaitable[str]]
OpenHook = Callable[["StreamChannel"], Awaitable[bool]]
FrameCallback = Callable[[str | bytes], Awaitable[None]]
LifecycleCallback = Callable[[], Awaitable[None]]


def websocket_connector(
    ping_interval: float = Defaults.PING_INTERVAL_SEC,
    ping_timeout: float = Defaults.PING_TIMEOUT_SEC,
) -> StreamConnector:
    """websockets 기반 기본 연결 팩토리"""
    return functools.partial(
        websockets.connect,
        ping_interval=ping_interval,
        ping_timeout=ping_timeout,
    )


async def _cancel_task(task: asyncio.Task[Any] | None) -> None:
    """태스크 취소 후 종료 대기 (현재 태스크 자신이면 취소하지 않음)"""
    if task is None or task.done() or task is asyncio.current_task():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


class StreamChannel:
    """단일 채널 WebSocket 연결 (연결 핸들)

    Args:
        channel: 채널 종류 (PUBLIC / PRIVATE)
        uri_provider: 연결할 URI를 반환하는 코루틴 (재연결 때마다 다시 호출)
        on_frame: 수신 프레임 콜백 (도착 순서대로 호출)
        on_open: 연결 직후 호출되는 훅 (False 반환 시 즉시 종료)
        on_close: 의도적 종료 후 호출되는 정리 훅
        keepalive: 연결 유지 중 주기적으로 호출 (실패 시 재연결)
        connector: 스트림 연결 팩토리
        reconnect_delay_ms: 재연결 대기 (밀리초)
        keepalive_interval_sec: keepalive 호출 주기 (초)
    """

    def __init__(
        self,
        channel: Channel,
        uri_provider: UriProvider,
        on_frame: FrameCallback,
        on_open: OpenHook | None = None,
        on_close: LifecycleCallback | None = None,
        keepalive: LifecycleCallback | None = None,
        connector: StreamConnector | None = None,
        reconnect_delay_ms: int = Defaults.RECONNECT_DELAY_MS,
        keepalive_interval_sec: float = Defaults.LISTEN_KEY_KEEPALIVE_SEC,
    ):
        self.channel = channel
        self.uri_provider = uri_provider
        self.on_frame = on_frame
        self.on_open = on_open
        self.on_close = on_close
        self.keepalive = keepalive
        self.connector = connector or websocket_connector()
        self.reconnect_delay_ms = reconnect_delay_ms
        self.keepalive_interval_sec = keepalive_interval_sec

        self._state = WebSocketState.DISCONNECTED
        self.is_intentional = False
        self._ws: IStreamConnection | None = None

        # 태스크 관리
        self._receive_task: asyncio.Task[None] | None = None
        self._keepalive_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._start_lock = asyncio.Lock()

        # 통계
        self.connect_count = 0

    @property
    def state(self) -> WebSocketState:
        """현재 연결 상태"""
        return self._state

    @property
    def is_open(self) -> bool:
        """연결되어 프레임 송수신 가능한지 여부"""
        return self._state == WebSocketState.CONNECTED and self._ws is not None

    @property
    def reconnect_pending(self) -> bool:
        """재연결 대기 중인지 여부"""
        return self._reconnect_task is not None and not self._reconnect_task.done()

    async def start(self) -> bool:
        """연결 시작

        이미 연결 중이면 그 결과를 기다리고, 재연결 대기 중이면 기다리지 않음.

        Returns:
            연결되어 있으면 True

        Raises:
            ConfigurationError: 연결에 필요한 설정(인증 정보 등)이 없을 때
        """
        self.is_intentional = False
        async with self._start_lock:
            if self.is_open:
                return True
            if self.reconnect_pending:
                return False
            return await self._connect(raise_config_error=True)

    async def stop(self) -> None:
        """의도적 종료 (재연결하지 않음)"""
        # 닫기 전에 의도적 종료를 먼저 표시해야 수신 루프가 재연결하지 않음
        self.is_intentional = True

        await _cancel_task(self._reconnect_task)
        self._reconnect_task = None
        await _cancel_task(self._keepalive_task)
        self._keepalive_task = None

        ws, self._ws = self._ws, None
        if ws is not None:
            self._set_state(WebSocketState.CLOSING)
            try:
                await ws.close()
            except Exception as e:
                logger.debug(f"[{self.channel.value}] close 에러 무시: {e}")

        await _cancel_task(self._receive_task)
        self._receive_task = None

        if self.on_close is not None:
            try:
                await self.on_close()
            except Exception as e:
                logger.warning(
                    f"[{self.channel.value}] 종료 훅 에러",
                    extra={"error": str(e)},
                )

        self._set_state(WebSocketState.DISCONNECTED)
        logger.info(f"[{self.channel.value}] WebSocket 연결 종료")

    async def send(self, frame: str) -> bool:
        """텍스트 프레임 전송

        전송에 실패하면 연결을 닫아 재연결 (연결 훅에서 구독 재전송).

        Returns:
            전송 성공 여부 (연결이 없거나 실패하면 False)
        """
        ws = self._ws
        if ws is None or self._state != WebSocketState.CONNECTED:
            return False
        try:
            await ws.send(frame)
            return True
        except Exception as e:
            logger.warning(
                f"[{self.channel.value}] 프레임 전송 실패, 연결 종료",
                extra={"error": str(e)},
            )
            await self._close_quietly(ws)
            return False

    async def _connect(self, raise_config_error: bool = False) -> bool:
        """내부 연결 수행

        실패 시 재연결을 예약하고 False 반환.
        """
        self._set_state(WebSocketState.CONNECTING)
        try:
            uri = await self.uri_provider()
            ws = await self.connector(uri)
        except ConfigurationError as e:
            self._set_state(WebSocketState.DISCONNECTED)
            if raise_config_error:
                raise
            logger.error(f"[{self.channel.value}] 설정 오류로 연결 실패", extra={"error": str(e)})
            self._schedule_reconnect()
            return False
        except Exception as e:
            logger.error(f"[{self.channel.value}] WebSocket 연결 실패", extra={"error": str(e)})
            self._set_state(WebSocketState.DISCONNECTED)
            self._schedule_reconnect()
            return False

        # 연결 중 stop()이 호출된 경우
        if self.is_intentional:
            await self._close_quietly(ws)
            self._set_state(WebSocketState.DISCONNECTED)
            return False

        self._ws = ws
        self.connect_count += 1
        self._set_state(WebSocketState.CONNECTED)
        logger.info(f"[{self.channel.value}] WebSocket 연결 성공")

        ok = True
        if self.on_open is not None:
            try:
                ok = await self.on_open(self)
            except Exception as e:
                logger.error(f"[{self.channel.value}] 연결 훅 에러", extra={"error": str(e)})
                ok = False

        if not ok:
            logger.warning(f"[{self.channel.value}] 연결 훅 실패, 연결 종료")
            self._ws = None
            await self._close_quietly(ws)
            self._set_state(WebSocketState.DISCONNECTED)
            self._schedule_reconnect()
            return False

        # 백그라운드 태스크 시작
        self._receive_task = asyncio.create_task(self._receive_loop(ws))
        if self.keepalive is not None:
            self._keepalive_task = asyncio.create_task(self._keepalive_loop(ws))
        return True

    async def _receive_loop(self, ws: IStreamConnection) -> None:
        """메시지 수신 루프 (도착 순서대로 처리)"""
        try:
            async for message in ws:
                try:
                    await self.on_frame(message)
                except Exception as e:
                    logger.error(
                        f"[{self.channel.value}] 메시지 처리 중 에러",
                        extra={"error": str(e)},
                    )
            logger.warning(f"[{self.channel.value}] WebSocket 연결 끊김")
        except ConnectionClosed as e:
            logger.warning(
                f"[{self.channel.value}] WebSocket 연결 끊김",
                extra={"code": e.rcvd.code if e.rcvd else None},
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[{self.channel.value}] 수신 루프 에러", extra={"error": str(e)})

        await self._handle_disconnect(ws)

    async def _keepalive_loop(self, ws: IStreamConnection) -> None:
        """주기적 keepalive (실패하면 연결을 닫아 재연결 유도)"""
        assert self.keepalive is not None
        while self._ws is ws:
            await asyncio.sleep(self.keepalive_interval_sec)
            if self._ws is not ws:
                break
            try:
                await self.keepalive()
                logger.debug(f"[{self.channel.value}] keepalive 완료")
            except Exception as e:
                logger.error(
                    f"[{self.channel.value}] keepalive 실패, 재연결 시도",
                    extra={"error": str(e)},
                )
                await self._close_quietly(ws)
                break

    async def _handle_disconnect(self, ws: IStreamConnection) -> None:
        """연결 끊김 처리"""
        if self._ws is not ws:
            # 이미 교체되었거나 stop()으로 정리된 연결
            return

        self._ws = None
        self._receive_task = None
        await _cancel_task(self._keepalive_task)
        self._keepalive_task = None
        self._set_state(WebSocketState.DISCONNECTED)

        if self.is_intentional:
            return
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        """재연결 예약 (이미 예약되어 있으면 무시)"""
        if self.is_intentional or self.reconnect_pending:
            return
        self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        """고정 지연 후 재연결 (성공하거나 의도적 종료될 때까지 반복)"""
        delay = self.reconnect_delay_ms / 1000
        while not self.is_intentional:
            logger.info(
                f"[{self.channel.value}] WebSocket 재연결 대기",
                extra={"delay_ms": self.reconnect_delay_ms},
            )
            await asyncio.sleep(delay)
            if self.is_intentional:
                return
            try:
                if await self._connect():
                    return
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    f"[{self.channel.value}] 재연결 실패",
                    extra={"error": str(e)},
                )
                self._set_state(WebSocketState.DISCONNECTED)

    async def _close_quietly(self, ws: IStreamConnection) -> None:
        try:
            await ws.close()
        except Exception as e:
            logger.debug(f"[{self.channel.value}] close 에러 무시: {e}")

    def _set_state(self, new_state: WebSocketState) -> None:
        """상태 변경"""
        old_state = self._state
        self._state = new_state
        if old_state != new_state:
            logger.debug(
                f"[{self.channel.value}] WebSocket 상태 변경",
                extra={"old_state": old_state.value, "new_state": new_state.value},
            )


class StreamManager:
    """공개/개인 스트림 연결 관리 및 프레임 라우팅

    채널별 연결은 최대 하나.
    구독 목록은 별도로 저장하지 않고 호가 캐시의 PUSH 항목에서 매번 도출.

    Args:
        venue: 거래소 어댑터
        symbols: 심볼 디렉토리 캐시
        depths: 호가 캐시
        account: 계좌 상태 캐시
        dispatcher: 이벤트 디스패처
        connector: 스트림 연결 팩토리 (None이면 websockets)
        reconnect_delay_ms: 재연결 대기 (밀리초)
        keepalive_interval_sec: 개인 채널 listenKey 갱신 주기 (초)
    """

    def __init__(
        self,
        venue: IVenueAdapter,
        symbols: SymbolDirectoryCache,
        depths: DepthCache,
        account: AccountStateCache,
        dispatcher: EventDispatcher,
        connector: StreamConnector | None = None,
        reconnect_delay_ms: int = Defaults.RECONNECT_DELAY_MS,
        keepalive_interval_sec: float = Defaults.LISTEN_KEY_KEEPALIVE_SEC,
    ):
        self.venue = venue
        self.symbols = symbols
        self.depths = depths
        self.account = account
        self.dispatcher = dispatcher
        self.connector = connector
        self.reconnect_delay_ms = reconnect_delay_ms
        self.keepalive_interval_sec = keepalive_interval_sec

        self.public: StreamChannel | None = None
        self.private: StreamChannel | None = None

    # -------------------------------------------------------------------------
    # 공개 채널 (호가)
    # -------------------------------------------------------------------------

    async def subscribe_depth(self, venue_symbol: str, newly_pushed: bool) -> bool:
        """공개 채널에 호가 구독 보장

        연결이 없으면 연결을 열고, 연결 훅이 PUSH 항목 전체를 구독함.
        연결이 열려 있으면 이 심볼만 구독 메시지를 보냄
        (이미 구독 중이었으면 메시지를 보내지 않음).

        Args:
            venue_symbol: 거래소 심볼
            newly_pushed: 이번 호출로 PUSH 전환되었는지 여부

        Returns:
            구독 메시지가 열린 연결로 전송되었으면 True (재연결 대기 중이면 False)
        """
        if self.public is None:
            self.public = StreamChannel(
                channel=Channel.PUBLIC,
                uri_provider=self._public_uri,
                on_frame=self._handle_frame,
                on_open=self._announce_depth_subscriptions,
                connector=self.connector,
                reconnect_delay_ms=self.reconnect_delay_ms,
            )

        if not self.public.is_open:
            return await self.public.start()

        if not newly_pushed:
            return True

        frame = self.venue.build_subscribe_frame([venue_symbol], self.depths.depth_limit)
        return await self.public.send(frame)

    async def _public_uri(self) -> str:
        return self.venue.public_channel_uri()

    async def _announce_depth_subscriptions(self, channel: StreamChannel) -> bool:
        """연결 훅: PUSH 항목 전체 구독"""
        directory = self.symbols.directory
        venue_symbols = []
        for pair in self.depths.push_pairs():
            entry = directory.get(pair)
            if entry is not None:
                venue_symbols.append(entry.venue_symbol)

        if not venue_symbols:
            return True

        frame = self.venue.build_subscribe_frame(venue_symbols, self.depths.depth_limit)
        sent = await channel.send(frame)
        if sent:
            logger.info(f"호가 구독 전송: {len(venue_symbols)}개 심볼")
        return sent

    # -------------------------------------------------------------------------
    # 개인 채널 (계좌/주문)
    # -------------------------------------------------------------------------

    async def subscribe_account(self) -> bool:
        """개인 채널 연결 보장

        Returns:
            연결되어 있으면 True

        Raises:
            ConfigurationError: 인증 정보가 없을 때
        """
        if self.private is None:
            self.private = StreamChannel(
                channel=Channel.PRIVATE,
                uri_provider=self._private_uri,
                on_frame=self._handle_frame,
                on_close=self.venue.close_private_channel,
                keepalive=self.venue.keepalive_private_channel,
                connector=self.connector,
                reconnect_delay_ms=self.reconnect_delay_ms,
                keepalive_interval_sec=self.keepalive_interval_sec,
            )

        self.account.mark_push()
        return await self.private.start()

    async def _private_uri(self) -> str:
        """listenKey 발급 + 계좌 스냅샷 (재연결 때마다 새로 수행)

        주문 이벤트의 심볼 변환에 디렉토리가 필요하므로 먼저 갱신.
        """
        await self.symbols.refresh_if_stale()
        uri = await self.venue.open_private_channel_uri()
        await self.account.load_snapshot()
        return uri

    # -------------------------------------------------------------------------
    # 프레임 라우팅
    # -------------------------------------------------------------------------

    async def _handle_frame(self, raw: str | bytes) -> None:
        """프레임 해석 후 캐시 반영 및 이벤트 발행"""
        try:
            decoded = self.venue.decode_frame(raw, self.symbols.lookup_pair)
        except DecodeError as e:
            logger.warning(
                "프레임 해석 실패, 무시",
                extra={"error": e.message, "frame": str(raw)[:100]},
            )
            return

        if decoded is None:
            logger.debug("처리 대상 아닌 프레임", extra={"frame": str(raw)[:100]})
            return

        if isinstance(decoded, DepthUpdate):
            entry = self.depths.apply_update(decoded)
            if entry is not None:
                await self.dispatcher.emit(EventCategory.DEPTH, decoded.symbol, entry)
        elif isinstance(decoded, BalanceUpdate):
            self.account.apply_update(decoded)
            await self.dispatcher.emit(EventCategory.BALANCE, decoded)
        elif isinstance(decoded, OrderEvent):
            await self.dispatcher.emit(EventCategory.ORDER, decoded)
        else:
            logger.debug(f"Unroutable decoded frame: {type(decoded).__name__}")

    # -------------------------------------------------------------------------
    # 종료
    # -------------------------------------------------------------------------

    async def stop(self) -> None:
        """모든 채널 의도적 종료"""
        for channel in (self.public, self.private):
            if channel is not None:
                await channel.stop()
