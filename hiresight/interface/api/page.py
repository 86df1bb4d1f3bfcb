import json

from ...core.config import Settings

INDEX_HTML = """
<!DOCTYPE html>
<html lang="en">
    <head>
        <meta charset="UTF-8">
        <title>__TITLE__</title>
        <meta name="viewport" content="width=device-width, initial-scale=1">
        <style>
            body {
                margin: 0;
                font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
                background: #fff;
                color: #1f2937;
            }
            .container {
                max-width: 1080px;
                margin: 0 auto;
                padding: 20px;
            }
            h1 { color: #2563eb; }
            .view { display: none; }
            .view.active { display: block; }
            .inputs {
                display: flex;
                gap: 20px;
            }
            .inputs div { flex: 1; }
            textarea {
                width: 100%;
                height: 320px;
                padding: 12px;
                border: 1px solid #d1d5db;
                border-radius: 8px;
                box-sizing: border-box;
            }
            button {
                padding: 12px 24px;
                margin: 10px 10px 0 0;
                font-size: 16px;
                border: none;
                border-radius: 6px;
                cursor: pointer;
                background: #2563eb;
                color: #fff;
            }
            button:disabled {
                background-color: #cccccc;
                cursor: not-allowed;
            }
            button.secondary {
                background: #fff;
                color: #374151;
                border: 2px solid #e5e7eb;
            }
            .question {
                padding: 12px;
                margin-bottom: 10px;
                border-radius: 8px;
                background: #eff6ff;
            }
            .category {
                font-size: 11px;
                font-weight: bold;
                text-transform: uppercase;
                color: #2563eb;
            }
            video {
                width: 640px;
                max-width: 100%;
                background: #000;
                border-radius: 8px;
                transform: scaleX(-1);
            }
            #rec { color: #dc2626; font-weight: bold; display: none; }
            .grid {
                display: grid;
                grid-template-columns: repeat(auto-fill, minmax(280px, 1fr));
                gap: 12px;
            }
            .card {
                padding: 14px;
                border: 1px solid #e5e7eb;
                border-radius: 8px;
            }
            .flags { background: #fef2f2; color: #991b1b; }
            #error-banner {
                position: fixed;
                bottom: 20px;
                left: 50%;
                transform: translateX(-50%);
                background: #dc2626;
                color: #fff;
                padding: 12px 20px;
                border-radius: 8px;
                display: none;
            }
            #error-banner button { margin: 0 0 0 12px; padding: 2px 10px; background: transparent; }
        </style>
    </head>
    <body>
        <div class="container">
            <h1>__TITLE__</h1>

            <div id="view-SETUP" class="view">
                <p>Paste your details to begin the evaluation.</p>
                <div class="inputs">
                    <div><label>Your Resume</label><textarea id="resume"></textarea></div>
                    <div><label>Job Description</label><textarea id="jobDescription"></textarea></div>
                </div>
                <button id="prepareBtn">Prepare Session</button>
            </div>

            <div id="view-PREPARING" class="view">
                <h2>Custom Questions Ready</h2>
                <div id="questionList"></div>
                <button id="startBtn">Start practicing</button>
            </div>

            <div id="view-INTERVIEWING" class="view">
                <div class="question">
                    <div class="category" id="questionMeta"></div>
                    <h2 id="questionText"></h2>
                </div>
                <video id="webcam" autoplay muted playsinline></video>
                <div id="rec">REC</div>
                <div><button id="recordBtn">Start Answer</button></div>
                <p id="answerTip"></p>
            </div>

            <div id="view-ANALYZING" class="view">
                <h2>AI Interview Evaluation...</h2>
                <p>Grading on STAR+R &amp; Technical metrics</p>
            </div>

            <div id="view-RESULTS" class="view">
                <h2>Practice Evaluation Report</h2>
                <p>Overall Score: <strong id="overallScore"></strong> / 5</p>
                <button id="redoBtn" class="secondary">Redo practice</button>
                <div class="grid" id="dimensions"></div>
                <div class="card flags" id="redFlags"></div>
                <div class="grid">
                    <div class="card"><h4>Non-Verbal &amp; Professionalism</h4><p id="bodyLanguage"></p></div>
                    <div class="card"><h4>Coach's Summary</h4><p id="overallFeedback"></p></div>
                    <div class="card"><h4>Key Strengths</h4><ul id="strengths"></ul></div>
                    <div class="card"><h4>Areas to Focus</h4><ul id="improvements"></ul></div>
                </div>
                <button id="nextBtn">Next Challenge</button>
            </div>
        </div>

        <div id="error-banner"><span id="error-text"></span><button id="dismissBtn">x</button></div>

        <script>
            const CONFIG = __CONFIG__;
            let sessionId = null;
            let snapshot = null;
            let stream = null;
            let ws = null;
            let frameTimer = null;

            const $ = (id) => document.getElementById(id);

            async function api(method, path, body) {
                const options = { method: method, headers: { 'Content-Type': 'application/json' } };
                if (body !== undefined) { options.body = JSON.stringify(body); }
                const response = await fetch(CONFIG.apiPrefix + '/sessions' + path, options);
                const data = await response.json();
                if (!response.ok) {
                    await refresh();
                    showError(data.detail);
                    return null;
                }
                render(data);
                return data;
            }

            async function refresh() {
                const response = await fetch(CONFIG.apiPrefix + '/sessions/' + sessionId);
                if (response.ok) { render(await response.json()); }
            }

            function showError(message) {
                $('error-text').textContent = message;
                $('error-banner').style.display = message ? 'block' : 'none';
            }

            function listItems(element, items) {
                element.innerHTML = '';
                items.forEach((item) => {
                    const li = document.createElement('li');
                    li.textContent = item;
                    element.appendChild(li);
                });
            }

            function render(data) {
                snapshot = data;
                document.querySelectorAll('.view').forEach((v) => v.classList.remove('active'));
                $('view-' + data.state).classList.add('active');
                showError(data.error);

                const busy = data.busy;
                $('prepareBtn').disabled = busy;
                $('recordBtn').disabled = busy;
                $('recordBtn').textContent = data.recording ? 'Finish Answer' : 'Start Answer';
                $('rec').style.display = data.recording ? 'block' : 'none';

                if (data.state === 'SETUP') {
                    $('resume').value = data.resume_text;
                    $('jobDescription').value = data.job_description_text;
                }
                if (data.state === 'PREPARING') {
                    const list = $('questionList');
                    list.innerHTML = '';
                    data.questions.forEach((q, idx) => {
                        const item = document.createElement('div');
                        item.className = 'question';
                        item.innerHTML = '<div class="category"></div><p></p>';
                        item.querySelector('.category').textContent = (idx + 1) + '. ' + q.category;
                        item.querySelector('p').textContent = q.text;
                        list.appendChild(item);
                    });
                }
                if (data.current_question) {
                    const q = data.current_question;
                    $('questionMeta').textContent = 'Question ' + (data.current_index + 1) + ' of ' +
                        data.questions.length + ' - ' + q.category;
                    $('questionText').textContent = q.text;
                    $('answerTip').textContent = 'Record your answer. Use the ' + q.answer_tip + '.';
                }
                if (data.state === 'RESULTS' && data.current_analysis) {
                    const a = data.current_analysis;
                    $('overallScore').textContent = a.overall_score;
                    const dims = $('dimensions');
                    dims.innerHTML = '';
                    a.dimensions.forEach((d) => {
                        const card = document.createElement('div');
                        card.className = 'card';
                        card.innerHTML = '<h4></h4><strong></strong><p></p>';
                        card.querySelector('h4').textContent = d.label;
                        card.querySelector('strong').textContent = d.score + '/5';
                        card.querySelector('p').textContent = d.feedback;
                        dims.appendChild(card);
                    });
                    $('redFlags').style.display = a.red_flags.length ? 'block' : 'none';
                    $('redFlags').innerHTML = '<h4>Red Flags Detected</h4><ul></ul>';
                    listItems($('redFlags').querySelector('ul'), a.red_flags);
                    $('bodyLanguage').textContent = a.body_language_notes;
                    $('overallFeedback').textContent = a.overall_feedback;
                    listItems($('strengths'), a.key_strengths);
                    listItems($('improvements'), a.areas_of_improvement);
                    $('nextBtn').textContent = data.is_last_question ? 'Complete Session' : 'Next Challenge';
                }

                if (data.state === 'INTERVIEWING') {
                    openCamera();
                } else {
                    closeCamera();
                }
            }

            async function openCamera() {
                // The opencv backend reads the camera on the server side
                if (stream || CONFIG.backend !== 'browser') { return true; }
                try {
                    stream = await navigator.mediaDevices.getUserMedia({
                        video: { facingMode: CONFIG.facingMode, width: CONFIG.width, height: CONFIG.height },
                        audio: true
                    });
                } catch (error) {
                    showError('Please grant camera/microphone permissions to continue.');
                    return false;
                }
                $('webcam').srcObject = stream;

                const scheme = window.location.protocol === 'https:' ? 'wss://' : 'ws://';
                ws = new WebSocket(scheme + window.location.host + CONFIG.wsPath + '/' + sessionId);
                const canvas = document.createElement('canvas');
                canvas.width = CONFIG.width;
                canvas.height = CONFIG.height;
                const ctx = canvas.getContext('2d');
                return new Promise((resolve) => {
                    ws.onerror = () => resolve(false);
                    ws.onmessage = () => resolve(true);
                    ws.onopen = () => {
                        frameTimer = setInterval(() => {
                            if (ws && ws.readyState === WebSocket.OPEN) {
                                ctx.drawImage($('webcam'), 0, 0, canvas.width, canvas.height);
                                ws.send(JSON.stringify({
                                    type: 'video_frame',
                                    data: canvas.toDataURL('image/jpeg', CONFIG.jpegQuality)
                                }));
                            }
                        }, 1000 / CONFIG.streamFps);
                    };
                });
            }

            function closeCamera() {
                clearInterval(frameTimer);
                frameTimer = null;
                if (ws) { ws.close(); ws = null; }
                if (stream) {
                    stream.getTracks().forEach((track) => track.stop());
                    stream = null;
                }
            }

            $('prepareBtn').onclick = async () => {
                const resume = $('resume').value;
                const jobDescription = $('jobDescription').value;
                if (await api('PUT', '/' + sessionId + '/inputs', { resume: resume, job_description: jobDescription })) {
                    await api('POST', '/' + sessionId + '/prepare');
                }
            };
            $('startBtn').onclick = async () => {
                await openCamera();
                api('POST', '/' + sessionId + '/start');
            };
            $('recordBtn').onclick = () => {
                if (snapshot.recording) {
                    $('view-INTERVIEWING').classList.remove('active');
                    $('view-ANALYZING').classList.add('active');
                    api('POST', '/' + sessionId + '/recording/end');
                } else {
                    api('POST', '/' + sessionId + '/recording/begin');
                }
            };
            $('redoBtn').onclick = async () => {
                await openCamera();
                api('POST', '/' + sessionId + '/redo');
            };
            $('nextBtn').onclick = async () => {
                if (!snapshot.is_last_question) { await openCamera(); }
                const data = await api('POST', '/' + sessionId + '/next');
                if (data && data.completed) { alert('Interview Completed! Session reset.'); }
            };
            $('dismissBtn').onclick = () => api('POST', '/' + sessionId + '/error/dismiss');

            (async () => {
                const response = await fetch(CONFIG.apiPrefix + '/sessions', { method: 'POST' });
                const data = await response.json();
                sessionId = data.session_id;
                render(data);
            })();

            window.addEventListener('beforeunload', () => {
                closeCamera();
                if (sessionId) {
                    fetch(CONFIG.apiPrefix + '/sessions/' + sessionId, { method: 'DELETE', keepalive: true });
                }
            });
        </script>
    </body>
</html>
"""


def render_index(settings: Settings) -> str:
    config = {
        "apiPrefix": settings.API_PREFIX,
        "wsPath": settings.WEBSOCKET_PATH,
        "backend": settings.CAPTURE_BACKEND.value,
        "facingMode": settings.CAMERA_FACING_MODE,
        "width": settings.CAMERA_WIDTH,
        "height": settings.CAMERA_HEIGHT,
        "jpegQuality": settings.JPEG_QUALITY / 100,
        "streamFps": settings.BROWSER_STREAM_FPS,
    }
    return (INDEX_HTML
            .replace("__TITLE__", settings.APP_NAME)
            .replace("__CONFIG__", json.dumps(config)))
