"""
撮合服务HTTP客户端
提供带重试机制、错误处理的异步接口调用
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import httpx

from courtqueue.utils.logger import get_logger

logger = get_logger(__name__)

IDEMPOTENT_METHODS = frozenset({'GET', 'HEAD', 'OPTIONS'})
UNSENT_ERRORS = (httpx.ConnectError, httpx.PoolTimeout)


class CourtQueueAPIError(RuntimeError):
    """服务端返回的调用方错误（4xx），不重试"""
    
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(f"[{status_code}] {code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message


class CourtQueueClient:
    """撮合服务客户端: 查询请求遇网络异常与5xx自动重试，写请求只在未送达时重试，4xx直接抛出"""
    
    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        max_retries: int = 3,
        retry_delay: float = 0.5,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()
        self._timeout = httpx.Timeout(self.timeout, connect=10.0)
    
    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        
        async with self._client_lock:
            if self._client is not None:
                return self._client
            
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
            )
            return self._client
    
    async def aclose(self) -> None:
        """在异步上下文关闭底层HTTP客户端"""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.aclose()
    
    async def __aenter__(self) -> 'CourtQueueClient':
        return self
    
    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
    
    @staticmethod
    def _can_resend(method: str, error: Optional[Exception] = None) -> bool:
        """非幂等请求仅在请求未送达服务端（连接失败、连接池超时）时重发"""
        if method.upper() in IDEMPOTENT_METHODS:
            return True
        return isinstance(error, UNSENT_ERRORS)
    
    @staticmethod
    def _parse_body(text: str) -> Dict[str, Any]:
        if not text or not text.strip():
            return {}
        try:
            output = json.loads(text, strict=False)
        except json.JSONDecodeError:
            return {'message': text}
        return output if isinstance(output, dict) else {'data': output}
    
    async def request(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[Dict[str, Any]] = None,
        context_name: str = "请求",
    ) -> Dict[str, Any]:
        """发送请求（带重试机制）"""
        client = await self._get_client()
        url = endpoint.lstrip('/')
        
        for attempt in range(self.max_retries):
            try:
                response = await client.request(method, url, json=json_data)
                status_code = response.status_code
                output = self._parse_body(response.text)
                
                if 400 <= status_code < 500:
                    code = str(output.get('code') or status_code)
                    message = str(output.get('message') or output.get('detail') or response.text)
                    logger.warning(f"{context_name}被拒绝 status={status_code}, code={code}, message={message}")
                    raise CourtQueueAPIError(status_code, code, message)
                
                if status_code >= 500:
                    logger.warning(f"{context_name}服务器错误 status={status_code}, body={response.text}")
                    if attempt < self.max_retries - 1 and self._can_resend(method):
                        wait_time = self.retry_delay * (2 ** attempt)
                        logger.info(f"等待 {wait_time:.2f}s 后重试{context_name}...")
                        await asyncio.sleep(wait_time)
                        continue
                    raise RuntimeError(f"{context_name}服务器错误: status={status_code}")
                
                return output
            
            except (httpx.ConnectError, httpx.ReadTimeout, httpx.WriteTimeout, httpx.PoolTimeout) as e:
                logger.warning(
                    f'{context_name}网络异常 (尝试 {attempt + 1}/{self.max_retries}): '
                    f'{type(e).__name__} - {str(e)}'
                )
                if not self._can_resend(method, e):
                    logger.warning(f'{context_name}可能已送达服务端，不再重试')
                    raise
                if attempt < self.max_retries - 1:
                    wait_time = self.retry_delay * (2 ** attempt)
                    logger.info(f'等待 {wait_time} 秒后重试...')
                    await asyncio.sleep(wait_time)
                else:
                    logger.warning(f'{context_name}重试次数已用尽')
                    raise
        
        raise RuntimeError(f"{context_name}失败，已重试 {self.max_retries} 次仍未成功")
    
    # ==================== 接口封装 ====================
    
    async def status(self) -> Dict[str, Any]:
        return await self.request('GET', '/api/status', context_name="查询状态")
    
    async def join(self, name: str) -> Dict[str, Any]:
        return await self.request('POST', '/api/queue/join', {'name': name}, context_name="加入队列")
    
    async def rejoin(self, participant_id: str) -> Dict[str, Any]:
        return await self.request('POST', f'/api/queue/rejoin/{participant_id}', context_name="重新入队")
    
    async def leave(self, participant_id: str) -> Dict[str, Any]:
        return await self.request('DELETE', f'/api/queue/{participant_id}', context_name="退出队列")
    
    async def create_session(self) -> Dict[str, Any]:
        return await self.request('POST', '/api/sessions', context_name="创建对局")
    
    async def complete_session(self, session_id: str, winner_ids: List[str]) -> Dict[str, Any]:
        return await self.request(
            'POST',
            f'/api/sessions/{session_id}/complete',
            {'winner_ids': list(winner_ids)},
            context_name="提交对局结果",
        )
    
    async def leaderboard(self) -> Dict[str, Any]:
        return await self.request('GET', '/api/leaderboard', context_name="查询排行榜")
